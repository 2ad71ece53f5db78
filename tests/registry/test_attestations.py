"""Tests for attestation verification: subject matching, key lookup, DSSE proofs."""

from __future__ import annotations

import asyncio
import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from trustgate.exceptions import (
    ExpiredKeyError,
    MissingKeyError,
    NotFoundError,
    SubjectMismatchError,
    VerificationFailureError,
)
from trustgate.registry.attestations import BundleVerifier, DsseVerifier, pae, to_purl
from trustgate.registry.client import RegistryClient
from trustgate.registry.crypto import sha512_integrity
from trustgate.registry.http_client import HttpClient
from trustgate.registry.models import AttestationBundle, Manifest, RegistryKey

from tests.helpers import (
    PROVENANCE_PREDICATE,
    REGISTRY,
    FakeRegistry,
    make_attestation,
    make_version,
    registry_key_dict,
    self_signed_certificate,
)

ATTESTATIONS_URL = f"{REGISTRY}/-/npm/v1/attestations/pkg@1.0.0"
NOW = datetime.now(timezone.utc)


def _manifest(name: str = "pkg", version: str = "1.0.0", **extra: Any) -> Manifest:
    url = f"{REGISTRY}/-/npm/v1/attestations/{name}@{version}"
    doc = make_version(name, version, attestations_url=url, **extra)
    return Manifest(name, version, doc, publish_time="2024-06-01T00:00:00.000Z")


def _keys(private_key: ec.EllipticCurvePrivateKey, **kwargs: Any) -> list[RegistryKey]:
    return [RegistryKey.from_dict(registry_key_dict(private_key, **kwargs))]


def verify(
    fake: FakeRegistry,
    manifest: Manifest,
    keys: list[RegistryKey],
    verifier: BundleVerifier | None = None,
) -> Manifest:
    async def go() -> Manifest:
        http = HttpClient(transport=fake.transport)
        client = RegistryClient(http, registry_url=REGISTRY, bundle_verifier=verifier)
        try:
            return await client.verify_attestations(manifest, keys)
        finally:
            await http.aclose()

    return asyncio.run(go())


class RecordingVerifier:
    """Bundle verifier that records calls and accepts (or rejects) everything."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.calls: list[tuple[AttestationBundle, str | None]] = []

    def __call__(self, bundle: AttestationBundle, public_key_pem: str | None) -> None:
        self.calls.append((bundle, public_key_pem))
        if not self.accept:
            raise ValueError("transparency log proof rejected")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestPurlAndPae:
    def test_purl(self) -> None:
        assert to_purl("pkg", "1.0.0") == "pkg:npm/pkg@1.0.0"
        assert to_purl("@scope/pkg", "2.0.0") == "pkg:npm/%40scope/pkg@2.0.0"

    def test_pae(self) -> None:
        assert pae("t", b"hello") == b"DSSEv1 1 t 5 hello"


# ---------------------------------------------------------------------------
# Successful verification
# ---------------------------------------------------------------------------


class TestVerifiedAttestations:
    """Bundles whose subject and proof both check out."""

    def test_keyed_publish_attestation(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "1.0.0")]})

        verified = verify(fake_registry, _manifest(), _keys(private_key))
        assert len(verified.verified_attestations) == 1

    def test_keyless_provenance_with_certificate(
        self,
        fake_registry: FakeRegistry,
        private_key: ec.EllipticCurvePrivateKey,
        other_private_key: ec.EllipticCurvePrivateKey,
    ) -> None:
        signed_at = NOW - timedelta(days=2)
        cert = self_signed_certificate(
            other_private_key, signed_at - timedelta(minutes=5), signed_at + timedelta(minutes=5)
        )
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [
            make_attestation(private_key, "pkg", "1.0.0"),
            make_attestation(
                other_private_key,
                "pkg",
                "1.0.0",
                keyid=None,
                predicate_type=PROVENANCE_PREDICATE,
                integrated_time=signed_at,
                certificate_der=cert,
            ),
        ]})

        verified = verify(fake_registry, _manifest(), _keys(private_key))
        assert [b.predicate_type for b in verified.verified_attestations][1] == PROVENANCE_PREDICATE

    def test_keyless_only_needs_no_registry_key(
        self, fake_registry: FakeRegistry, other_private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        signed_at = NOW - timedelta(days=1)
        cert = self_signed_certificate(
            other_private_key, signed_at - timedelta(minutes=5), signed_at + timedelta(minutes=5)
        )
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            other_private_key, "pkg", "1.0.0", keyid=None, integrated_time=signed_at, certificate_der=cert,
        )]})

        verified = verify(fake_registry, _manifest(), keys=[])
        assert len(verified.verified_attestations) == 1

    def test_scoped_package(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(
            f"{REGISTRY}/-/npm/v1/attestations/@scope/pkg@1.0.0",
            {"attestations": [make_attestation(private_key, "@scope/pkg", "1.0.0")]},
        )
        verified = verify(fake_registry, _manifest("@scope/pkg"), _keys(private_key))
        assert verified.verified_attestations

    def test_only_url_path_is_used(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        """The attestation URL host is replaced by the configured registry."""
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "1.0.0")]})
        doc = make_version(
            "pkg", "1.0.0", attestations_url="https://elsewhere.test/-/npm/v1/attestations/pkg@1.0.0"
        )
        verify(fake_registry, Manifest("pkg", "1.0.0", doc), _keys(private_key))
        assert [str(r.url) for r in fake_registry.requests] == [ATTESTATIONS_URL]

    def test_key_expiring_after_integrated_time(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            private_key, "pkg", "1.0.0", integrated_time=NOW - timedelta(days=30),
        )]})
        keys = _keys(private_key, expires=(NOW - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S.000Z"))
        assert verify(fake_registry, _manifest(), keys).verified_attestations


# ---------------------------------------------------------------------------
# Subject checks run before the proof check
# ---------------------------------------------------------------------------


class TestSubjectMismatch:
    """A bundle for another package is rejected even if its proof is valid."""

    def test_wrong_subject_name(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            private_key, "pkg", "1.0.0", subject_name="pkg:npm/other@1.0.0",
        )]})
        verifier = RecordingVerifier(accept=True)

        with pytest.raises(SubjectMismatchError) as exc_info:
            verify(fake_registry, _manifest(), _keys(private_key), verifier)
        assert "pkg:npm/other@1.0.0" in str(exc_info.value)
        assert exc_info.value.code == "EATTESTATIONSUBJECT"
        assert verifier.calls == []

    def test_wrong_version_in_subject(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "0.9.0")]})
        with pytest.raises(SubjectMismatchError):
            verify(fake_registry, _manifest(), _keys(private_key), RecordingVerifier())

    def test_wrong_digest(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            private_key, "pkg", "1.0.0", integrity=sha512_integrity(b"another tarball"),
        )]})
        verifier = RecordingVerifier(accept=True)

        with pytest.raises(SubjectMismatchError, match="integrity"):
            verify(fake_registry, _manifest(), _keys(private_key), verifier)
        assert verifier.calls == []

    def test_manifest_without_sha512_integrity(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "1.0.0")]})
        with pytest.raises(SubjectMismatchError):
            verify(fake_registry, _manifest(integrity="sha1-abc"), _keys(private_key), RecordingVerifier())


# ---------------------------------------------------------------------------
# Keys and proofs
# ---------------------------------------------------------------------------


class TestKeysAndProofs:
    """Key lookup, key expiry, and the proof check."""

    def test_verifier_receives_registry_key(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "1.0.0")]})
        keys = _keys(private_key)
        verifier = RecordingVerifier()

        verify(fake_registry, _manifest(), keys, verifier)
        assert verifier.calls[0][1] == keys[0].pem

    def test_verifier_rejection(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "1.0.0")]})
        with pytest.raises(VerificationFailureError, match="proof rejected") as exc_info:
            verify(fake_registry, _manifest(), _keys(private_key), RecordingVerifier(accept=False))
        assert exc_info.value.keyid == "SHA256:k1"

    def test_envelope_signed_by_another_key(
        self,
        fake_registry: FakeRegistry,
        private_key: ec.EllipticCurvePrivateKey,
        other_private_key: ec.EllipticCurvePrivateKey,
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(other_private_key, "pkg", "1.0.0")]})
        with pytest.raises(VerificationFailureError, match="does not match"):
            verify(fake_registry, _manifest(), _keys(private_key))

    def test_certificate_not_valid_at_integrated_time(
        self, fake_registry: FakeRegistry, other_private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        signed_at = NOW - timedelta(days=1)
        cert = self_signed_certificate(
            other_private_key, signed_at + timedelta(hours=1), signed_at + timedelta(hours=2)
        )
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            other_private_key, "pkg", "1.0.0", keyid=None, integrated_time=signed_at, certificate_der=cert,
        )]})
        with pytest.raises(VerificationFailureError, match="not valid at integrated time"):
            verify(fake_registry, _manifest(), keys=[])

    def test_keyless_without_certificate(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            private_key, "pkg", "1.0.0", keyid=None,
        )]})
        with pytest.raises(VerificationFailureError, match="signing certificate"):
            verify(fake_registry, _manifest(), keys=[], verifier=DsseVerifier())

    def test_unknown_keyid(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            private_key, "pkg", "1.0.0", keyid="SHA256:unknown",
        )]})
        with pytest.raises(MissingKeyError):
            verify(fake_registry, _manifest(), _keys(private_key))

    def test_key_expired_before_integrated_time(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(
            private_key, "pkg", "1.0.0", integrated_time=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )]})
        keys = _keys(private_key, expires="2024-01-01T00:00:00.000Z")
        with pytest.raises(ExpiredKeyError):
            verify(fake_registry, _manifest(), keys, RecordingVerifier())

    def test_statement_with_non_list_subject(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        attestation = make_attestation(private_key, "pkg", "1.0.0")
        attestation["bundle"]["dsseEnvelope"]["payload"] = base64.b64encode(
            json.dumps({"subject": {"name": to_purl("pkg", "1.0.0")}}).encode("utf-8")
        ).decode("ascii")
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [attestation]})

        with pytest.raises(VerificationFailureError) as exc_info:
            verify(fake_registry, _manifest(), _keys(private_key), RecordingVerifier())
        assert exc_info.value.keyid == "SHA256:k1"
        assert exc_info.value.predicate_type == attestation["predicateType"]

    def test_unreadable_key_expiry(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": [make_attestation(private_key, "pkg", "1.0.0")]})
        keys = _keys(private_key, expires="not-a-date")
        with pytest.raises(MissingKeyError, match="unreadable expiry") as exc_info:
            verify(fake_registry, _manifest(), keys, RecordingVerifier())
        assert exc_info.value.keyid == "SHA256:k1"


# ---------------------------------------------------------------------------
# Missing attestations
# ---------------------------------------------------------------------------


class TestNoAttestations:
    def test_manifest_without_attestations(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        manifest = Manifest("pkg", "1.0.0", make_version("pkg", "1.0.0"))
        with pytest.raises(NotFoundError):
            verify(fake_registry, manifest, _keys(private_key))
        assert fake_registry.requests == []

    def test_empty_collection(self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey) -> None:
        fake_registry.add(ATTESTATIONS_URL, {"attestations": []})
        with pytest.raises(NotFoundError):
            verify(fake_registry, _manifest(), _keys(private_key))

    def test_collection_missing_on_registry(
        self, fake_registry: FakeRegistry, private_key: ec.EllipticCurvePrivateKey
    ) -> None:
        with pytest.raises(NotFoundError):
            verify(fake_registry, _manifest(), _keys(private_key))
