"""Shared test helpers: signing keys, registry documents, and a fake registry.

All cryptographic material is generated at test time with ``cryptography``
(ECDSA P-256, the registry's key type). All HTTP traffic is served by
``httpx.MockTransport``.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from trustgate.registry.attestations import pae, to_purl
from trustgate.registry.crypto import integrity_hex_digest, sha512_integrity

REGISTRY = "https://registry.npmjs.org"
DOWNLOADS = "https://api.npmjs.org"
GITHUB = "https://api.github.com"
KEYS_URL = f"{REGISTRY}/-/npm/v1/keys"

TARBALL_BYTES = b"fake tarball contents"
INTEGRITY = sha512_integrity(TARBALL_BYTES)
PAYLOAD_TYPE = "application/vnd.in-toto+json"
PROVENANCE_PREDICATE = "https://slsa.dev/provenance/v1"
PUBLISH_PREDICATE = "https://github.com/npm/attestation/tree/main/specs/publish/v0.1"


def iso(moment: datetime) -> str:
    """Format like the registry does (``2024-01-01T00:00:00.000Z``)."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def days_ago(days: float) -> str:
    return iso(datetime.now(timezone.utc) - timedelta(days=days))


# ---------------------------------------------------------------------------
# Keys and signatures
# ---------------------------------------------------------------------------


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


def registry_key_dict(
    private_key: ec.EllipticCurvePrivateKey,
    keyid: str = "SHA256:k1",
    expires: str | None = None,
) -> dict[str, Any]:
    """A key entry shaped like ``/-/npm/v1/keys`` output."""
    der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return {
        "keyid": keyid,
        "keytype": "ecdsa-sha2-nistp256",
        "scheme": "ecdsa-sha2-nistp256",
        "key": base64.b64encode(der).decode("ascii"),
        "expires": expires,
    }


def sign(private_key: ec.EllipticCurvePrivateKey, message: bytes) -> str:
    """Base64 DER ECDSA-SHA256 signature, as the registry publishes them."""
    return base64.b64encode(private_key.sign(message, ec.ECDSA(hashes.SHA256()))).decode("ascii")


def self_signed_certificate(
    private_key: ec.EllipticCurvePrivateKey,
    not_before: datetime,
    not_after: datetime,
) -> bytes:
    """DER certificate standing in for a short-lived keyless signing cert."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "sigstore-test")])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


# ---------------------------------------------------------------------------
# Registry documents
# ---------------------------------------------------------------------------


def make_version(
    name: str,
    version: str,
    *,
    integrity: str = INTEGRITY,
    signatures: list[dict[str, str]] | None = None,
    attestations_url: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    dist: dict[str, Any] = {
        "integrity": integrity,
        "tarball": f"{REGISTRY}/{name}/-/{name.split('/')[-1]}-{version}.tgz",
    }
    if signatures is not None:
        dist["signatures"] = signatures
    if attestations_url is not None:
        dist["attestations"] = {
            "url": attestations_url,
            "provenance": {"predicateType": PROVENANCE_PREDICATE},
        }
    doc = {"name": name, "version": version, "_id": f"{name}@{version}", "dist": dist}
    doc.update(extra)
    return doc


def make_packument(
    name: str = "pkg",
    versions: dict[str, dict[str, Any]] | None = None,
    *,
    dist_tags: dict[str, str] | None = None,
    time: dict[str, str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    versions = versions if versions is not None else {"1.0.0": make_version(name, "1.0.0")}
    doc: dict[str, Any] = {
        "name": name,
        "dist-tags": dist_tags if dist_tags is not None else {"latest": list(versions)[-1]},
        "versions": versions,
    }
    if time is not None:
        doc["time"] = time
    doc.update(extra)
    return doc


def signed_version(
    private_key: ec.EllipticCurvePrivateKey,
    name: str,
    version: str,
    *,
    keyid: str = "SHA256:k1",
    integrity: str = INTEGRITY,
    **extra: Any,
) -> dict[str, Any]:
    """A version document carrying a valid registry signature."""
    sig = sign(private_key, f"{name}@{version}:{integrity}".encode("utf-8"))
    return make_version(
        name,
        version,
        integrity=integrity,
        signatures=[{"keyid": keyid, "sig": sig}],
        **extra,
    )


def make_attestation(
    private_key: ec.EllipticCurvePrivateKey,
    name: str,
    version: str,
    *,
    keyid: str | None = "SHA256:k1",
    integrity: str = INTEGRITY,
    subject_name: str | None = None,
    predicate_type: str = PUBLISH_PREDICATE,
    integrated_time: datetime | None = None,
    certificate_der: bytes | None = None,
) -> dict[str, Any]:
    """One entry of an attestation collection, signed over the DSSE PAE."""
    statement = {
        "_type": "https://in-toto.io/Statement/v1",
        "subject": [{
            "name": subject_name or to_purl(name, version),
            "digest": {"sha512": integrity_hex_digest(integrity)},
        }],
        "predicateType": predicate_type,
        "predicate": {},
    }
    payload = json.dumps(statement).encode("utf-8")
    signature: dict[str, str] = {"sig": sign(private_key, pae(PAYLOAD_TYPE, payload))}
    if keyid:
        signature["keyid"] = keyid
    moment = integrated_time or datetime.now(timezone.utc) - timedelta(days=30)
    material: dict[str, Any] = {
        "tlogEntries": [{"integratedTime": str(int(moment.timestamp()))}],
    }
    if certificate_der is not None:
        material["certificate"] = {"rawBytes": base64.b64encode(certificate_der).decode("ascii")}
    return {
        "predicateType": predicate_type,
        "bundle": {
            "mediaType": "application/vnd.dev.sigstore.bundle.v0.3+json",
            "verificationMaterial": material,
            "dsseEnvelope": {
                "payload": base64.b64encode(payload).decode("ascii"),
                "payloadType": PAYLOAD_TYPE,
                "signatures": [signature],
            },
        },
    }


# ---------------------------------------------------------------------------
# Fake registry transport
# ---------------------------------------------------------------------------


class FakeRegistry:
    """Route table served through ``httpx.MockTransport``.

    Unknown URLs answer 404. Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        body: Any = None,  # noqa: ANN401
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> FakeRegistry:
        self.routes[url] = httpx.Response(status, json=body, headers=headers)
        return self

    def add_keys(self, *keys: dict[str, Any]) -> FakeRegistry:
        return self.add(KEYS_URL, {"keys": list(keys)})

    def add_packument(self, doc: dict[str, Any]) -> FakeRegistry:
        return self.add(f"{REGISTRY}/{doc['name']}", doc)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get(str(request.url))
        if response is None:
            return httpx.Response(404, json={"error": "Not found"})
        return httpx.Response(
            response.status_code,
            content=response.content,
            headers=response.headers,
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)
