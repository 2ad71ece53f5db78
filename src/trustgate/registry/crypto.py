"""Cryptographic primitives used by registry verification.

Wraps ``cryptography`` so the rest of the client deals in PEM strings and
raw bytes. The npm registry signs with ECDSA P-256 over SHA-256; Ed25519
keys are accepted as well so that alternative registries and test fixtures
can use them.
"""

from __future__ import annotations

import base64
import binascii
import hashlib

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

PublicKey = ec.EllipticCurvePublicKey | Ed25519PublicKey


def load_public_key(pem: str | bytes) -> PublicKey:
    """Load an ECDSA or Ed25519 public key from PEM.

    Raises:
        ValueError: If the PEM is malformed or holds another key type.
    """
    data = pem.encode("ascii") if isinstance(pem, str) else pem
    key = serialization.load_pem_public_key(data)
    if not isinstance(key, (ec.EllipticCurvePublicKey, Ed25519PublicKey)):
        raise ValueError(f"unsupported public key type: {type(key).__name__}")
    return key


def load_certificate_key(der: bytes) -> tuple[PublicKey, x509.Certificate]:
    """Load the public key of a DER-encoded X.509 certificate.

    Raises:
        ValueError: If the certificate cannot be parsed or holds another key type.
    """
    cert = x509.load_der_x509_certificate(der)
    key = cert.public_key()
    if not isinstance(key, (ec.EllipticCurvePublicKey, Ed25519PublicKey)):
        raise ValueError(f"unsupported certificate key type: {type(key).__name__}")
    return key, cert


def verify_signature(public_key: PublicKey, signature: bytes, message: bytes) -> bool:
    """Return True if ``signature`` is valid for ``message`` under ``public_key``."""
    try:
        if isinstance(public_key, Ed25519PublicKey):
            public_key.verify(signature, message)
        else:
            public_key.verify(signature, message, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True


def integrity_hex_digest(integrity: str, algorithm: str = "sha512") -> str:
    """Convert an SRI integrity string (``sha512-<base64>``) to a hex digest.

    Multiple whitespace-separated hashes are allowed; the first one using
    ``algorithm`` is returned.

    Raises:
        ValueError: If no valid hash for ``algorithm`` is present.
    """
    for token in integrity.split():
        algo, _, encoded = token.partition("-")
        if algo != algorithm or not encoded:
            continue
        # Options after "?" are part of the SRI grammar but not the digest.
        encoded = encoded.split("?", 1)[0]
        try:
            return base64.b64decode(encoded, validate=True).hex()
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"malformed {algorithm} integrity value") from exc
    raise ValueError(f"no {algorithm} digest in integrity value")


def sha512_integrity(data: bytes) -> str:
    """Build an SRI sha512 integrity string for ``data``."""
    return "sha512-" + base64.b64encode(hashlib.sha512(data).digest()).decode("ascii")
