"""DSSE attestation helpers and the default proof verifier.

Attestation bundles served by the registry wrap an in-toto statement in a
DSSE envelope. Publish attestations are signed with a registry key (the
signature carries a ``keyid``); provenance attestations are signed keyless,
with a short-lived signing certificate embedded in the bundle.

The proof check is pluggable: ``RegistryClient`` accepts any
``BundleVerifier`` and only ever calls it after the statement subject has
been matched against the package. ``DsseVerifier`` is the default.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Callable

from trustgate.registry.crypto import load_certificate_key, load_public_key, verify_signature
from trustgate.registry.models import AttestationBundle

logger = logging.getLogger(__name__)

# Called with the bundle and the PEM of the registry key selected for it
# (None for keyless bundles). Raises on rejection.
BundleVerifier = Callable[[AttestationBundle, "str | None"], None]


def to_purl(name: str, version: str) -> str:
    """Package URL for an npm package version (``pkg:npm/%40scope/name@1.0.0``)."""
    if name.startswith("@"):
        name = "%40" + name[1:]
    return f"pkg:npm/{name}@{version}"


def pae(payload_type: str, payload: bytes) -> bytes:
    """DSSE pre-authentication encoding of a payload."""
    type_bytes = payload_type.encode("utf-8")
    return b" ".join([
        b"DSSEv1",
        str(len(type_bytes)).encode("ascii"),
        type_bytes,
        str(len(payload)).encode("ascii"),
        payload,
    ])


def _certificate_der(bundle: AttestationBundle) -> bytes | None:
    material = bundle.verification_material
    cert = material.get("certificate")
    if isinstance(cert, dict) and cert.get("rawBytes"):
        return base64.b64decode(cert["rawBytes"])
    chain = material.get("x509CertificateChain")
    if isinstance(chain, dict):
        certs = chain.get("certificates") or []
        if certs and isinstance(certs[0], dict) and certs[0].get("rawBytes"):
            return base64.b64decode(certs[0]["rawBytes"])
    return None


class DsseVerifier:
    """Verify the DSSE envelope signature of an attestation bundle.

    With a key PEM the envelope must verify under that key. Without one the
    leaf signing certificate from the bundle's verification material is
    used, and the bundle's integrated time must fall inside the
    certificate's validity window.
    """

    def __call__(self, bundle: AttestationBundle, public_key_pem: str | None) -> None:
        try:
            signature = base64.b64decode(bundle.sig, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("envelope signature is not valid base64") from exc
        if not signature:
            raise ValueError("envelope carries no signature")

        if public_key_pem is not None:
            key = load_public_key(public_key_pem)
        else:
            der = _certificate_der(bundle)
            if der is None:
                raise ValueError("bundle has neither a key id nor a signing certificate")
            key, cert = load_certificate_key(der)
            signed_at = bundle.integrated_time
            if not cert.not_valid_before_utc <= signed_at <= cert.not_valid_after_utc:
                raise ValueError("signing certificate was not valid at integrated time")

        message = pae(bundle.payload_type, bundle.payload)
        if not verify_signature(key, signature, message):
            raise ValueError("envelope signature does not match")
        logger.debug("Verified DSSE envelope for %s", bundle.predicate_type)
