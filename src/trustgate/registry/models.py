"""Data models for the registry trust client.

Defines the immutable request type (``PackageSpec``), the registry documents
(``Packument`` for all versions of a package, ``Manifest`` for one resolved
version), signing keys, signatures, and attestation bundles.

Registry JSON is kept as plain dicts inside these wrappers and read through
small accessors, because the registry adds fields freely and only a handful
are relevant to trust decisions.
"""

from __future__ import annotations

import base64
import json
import textwrap
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

# Some really old packages have no ``time`` entry at all.
MISSING_TIME_CUTOFF: str = "2015-01-01T00:00:00.000Z"

DEFAULT_SPECIFIER: str = "latest"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 registry timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# PackageSpec
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageSpec:
    """A package requested for installation.

    Attributes:
        name: Package name, possibly scoped (``@scope/name``).
        version_specifier: Exact version, semver range, or dist-tag.
    """

    name: str
    version_specifier: str = DEFAULT_SPECIFIER

    @classmethod
    def parse(cls, text: str) -> PackageSpec:
        """Parse ``name``, ``name@spec``, ``@scope/name`` or ``@scope/name@spec``.

        Raises:
            ValueError: If no package name is present.
        """
        raw = text.strip()
        offset = 1 if raw.startswith("@") else 0
        at = raw.find("@", offset)
        if at == -1:
            name, specifier = raw, ""
        else:
            name, specifier = raw[:at], raw[at + 1:].strip()
        if not name or name.endswith("/") or (offset and "/" not in name):
            raise ValueError(f"Invalid package spec: {text!r}")
        return cls(name=name, version_specifier=specifier or DEFAULT_SPECIFIER)

    @property
    def package_string(self) -> str:
        return f"{self.name}@{self.version_specifier}"

    @property
    def escaped_name(self) -> str:
        """Name as used in registry URLs (``@scope%2Fname``)."""
        return quote(self.name, safe="@")

    def __str__(self) -> str:
        return self.package_string


# ---------------------------------------------------------------------------
# Keys and signatures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryKey:
    """A registry signing key from ``/-/npm/v1/keys``.

    Attributes:
        keyid: Key identifier referenced by signatures (``SHA256:...``).
        key: Base64 DER SubjectPublicKeyInfo as published by the registry.
        keytype: Registry key type (e.g. ``ecdsa-sha2-nistp256``).
        scheme: Signature scheme (e.g. ``ecdsa-sha2-nistp256``).
        expires: ISO-8601 expiry, or None for a key that does not expire.
    """

    keyid: str
    key: str
    keytype: str = ""
    scheme: str = ""
    expires: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryKey:
        return cls(
            keyid=str(data.get("keyid", "")),
            key=str(data.get("key", "")),
            keytype=str(data.get("keytype", "")),
            scheme=str(data.get("scheme", "")),
            expires=data.get("expires") or None,
        )

    @property
    def pem(self) -> str:
        body = "\n".join(textwrap.wrap(self.key, 64)) if "\n" not in self.key else self.key
        return f"-----BEGIN PUBLIC KEY-----\n{body}\n-----END PUBLIC KEY-----\n"

    def valid_at(self, moment: datetime) -> bool:
        """Return True if the key had not yet expired at ``moment``.

        Raises:
            ValueError: If ``expires`` is not an ISO-8601 timestamp.
        """
        if not self.expires:
            return True
        return moment < parse_timestamp(str(self.expires))


@dataclass(frozen=True)
class Signature:
    """A registry signature from a version's ``dist.signatures`` block."""

    keyid: str
    sig: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Signature:
        return cls(keyid=str(data.get("keyid", "")), sig=str(data.get("sig", "")))

    @property
    def signature_bytes(self) -> bytes:
        return base64.b64decode(self.sig)


# ---------------------------------------------------------------------------
# Packument and Manifest
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Packument:
    """The full registry document for a package (all versions)."""

    name: str
    data: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def dist_tags(self) -> dict[str, str]:
        tags = self.data.get("dist-tags")
        return tags if isinstance(tags, dict) else {}

    @property
    def versions(self) -> dict[str, dict[str, Any]]:
        versions = self.data.get("versions")
        return versions if isinstance(versions, dict) else {}

    @property
    def time(self) -> dict[str, str]:
        time = self.data.get("time")
        return time if isinstance(time, dict) else {}

    @property
    def created(self) -> str | None:
        return self.time.get("created")

    @property
    def repository_url(self) -> str | None:
        repo = self.data.get("repository")
        if isinstance(repo, dict):
            return repo.get("url") or None
        if isinstance(repo, str):
            return repo or None
        return None

    def version_data(self, version: str) -> dict[str, Any]:
        data = self.versions.get(version)
        return data if isinstance(data, dict) else {}


@dataclass(frozen=True)
class Manifest:
    """One concrete version of a package, as resolved from its packument.

    Attributes:
        name: Package name.
        version: Concrete resolved version.
        data: The registry's version document.
        publish_time: ISO-8601 publish time, if the registry recorded one.
        verified_signatures: Signatures that passed verification.
        verified_attestations: Attestation bundles that passed verification.
    """

    name: str
    version: str
    data: dict[str, Any] = field(default_factory=dict, compare=False)
    publish_time: str | None = None
    verified_signatures: tuple[Signature, ...] = ()
    verified_attestations: tuple[AttestationBundle, ...] = ()

    @property
    def package_id(self) -> str:
        return str(self.data.get("_id") or f"{self.name}@{self.version}")

    @property
    def dist(self) -> dict[str, Any]:
        dist = self.data.get("dist")
        return dist if isinstance(dist, dict) else {}

    @property
    def integrity(self) -> str:
        return str(self.dist.get("integrity", ""))

    @property
    def tarball(self) -> str:
        return str(self.dist.get("tarball", ""))

    @property
    def signatures(self) -> list[Signature]:
        raw = self.dist.get("signatures") or []
        return [Signature.from_dict(s) for s in raw if isinstance(s, dict)]

    @property
    def attestations_url(self) -> str | None:
        att = self.dist.get("attestations")
        if isinstance(att, dict) and att.get("url"):
            return str(att["url"])
        return None

    @property
    def scripts(self) -> dict[str, Any]:
        scripts = self.data.get("scripts")
        return scripts if isinstance(scripts, dict) else {}

    @property
    def deprecated(self) -> str | None:
        value = self.data.get("deprecated")
        return str(value) if value else None

    @property
    def npm_user(self) -> dict[str, Any]:
        """The publishing user (``{"name": ..., "email": ...}``), if recorded."""
        user = self.data.get("_npmUser")
        return user if isinstance(user, dict) else {}

    def with_signatures(self, signatures: list[Signature]) -> Manifest:
        return replace(self, verified_signatures=tuple(signatures))

    def with_attestations(self, bundles: list[AttestationBundle]) -> Manifest:
        return replace(self, verified_attestations=tuple(bundles))


# ---------------------------------------------------------------------------
# Attestations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Statement:
    """The in-toto statement carried in a DSSE payload (first subject only)."""

    subject_name: str
    subject_sha512: str
    predicate_type: str = ""


@dataclass(frozen=True)
class AttestationBundle:
    """A sigstore bundle from the registry's attestation collection.

    Attributes:
        predicate_type: e.g. ``https://slsa.dev/provenance/v1``.
        bundle: The raw bundle document.
    """

    predicate_type: str
    bundle: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def envelope(self) -> dict[str, Any]:
        env = self.bundle.get("dsseEnvelope")
        return env if isinstance(env, dict) else {}

    @property
    def payload(self) -> bytes:
        return base64.b64decode(self.envelope.get("payload", ""))

    @property
    def payload_type(self) -> str:
        return str(self.envelope.get("payloadType", ""))

    @property
    def keyid(self) -> str | None:
        sigs = self.envelope.get("signatures") or []
        if sigs and isinstance(sigs[0], dict):
            return sigs[0].get("keyid") or None
        return None

    @property
    def sig(self) -> str:
        sigs = self.envelope.get("signatures") or []
        if sigs and isinstance(sigs[0], dict):
            return str(sigs[0].get("sig", ""))
        return ""

    @property
    def verification_material(self) -> dict[str, Any]:
        material = self.bundle.get("verificationMaterial")
        return material if isinstance(material, dict) else {}

    @property
    def integrated_time(self) -> datetime:
        """Transparency log inclusion time of the first tlog entry.

        Raises:
            ValueError: If the bundle carries no integrated time.
        """
        entries = self.verification_material.get("tlogEntries") or []
        if not entries or "integratedTime" not in entries[0]:
            raise ValueError("Attestation bundle has no integrated time")
        return datetime.fromtimestamp(int(entries[0]["integratedTime"]), tz=timezone.utc)

    def statement(self) -> Statement:
        """Decode the DSSE payload into a ``Statement``.

        Raises:
            ValueError: If the payload is not a JSON statement with a subject.
        """
        doc = json.loads(self.payload.decode("utf-8"))
        subjects = doc.get("subject") if isinstance(doc, dict) else None
        if not isinstance(subjects, list) or not subjects or not isinstance(subjects[0], dict):
            raise ValueError("Attestation statement has no subject")
        subject = subjects[0]
        digest = subject.get("digest") or {}
        if not isinstance(digest, dict):
            raise ValueError("Attestation subject digest is not a mapping")
        return Statement(
            subject_name=str(subject.get("name", "")),
            subject_sha512=str(digest.get("sha512", "")),
            predicate_type=str(doc.get("predicateType", "")),
        )
