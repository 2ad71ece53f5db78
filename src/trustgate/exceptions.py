"""TrustGate exception hierarchy.

All public exceptions inherit from TrustGateError, giving callers a single
base class to catch when they want to handle any TrustGate-specific failure
without swallowing unrelated errors.

Registry failures carry the context needed to build a user-facing message
(package id, key id, predicate type) and a short registry-style ``code``.
"""

from __future__ import annotations


class TrustGateError(Exception):
    """Base exception for all TrustGate errors."""


class ConfigError(TrustGateError):
    """Raised when configuration values or files are invalid."""


class RegistryError(TrustGateError):
    """Base class for failures surfaced by the registry trust client.

    Attributes:
        package_id: ``name@version`` of the package being verified, if known.
        keyid: Registry key id involved in the failure, if any.
        predicate_type: Attestation predicate type involved, if any.
    """

    code: str = "EREGISTRY"

    def __init__(
        self,
        message: str,
        *,
        package_id: str | None = None,
        keyid: str | None = None,
        predicate_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.package_id = package_id
        self.keyid = keyid
        self.predicate_type = predicate_type


class NotFoundError(RegistryError):
    """Raised when a package, version, dist-tag or registry document is absent."""

    code = "E404"


class MissingKeyError(RegistryError):
    """Raised when a signature or attestation references an unknown keyid."""

    code = "EMISSINGSIGNATUREKEY"


class ExpiredKeyError(RegistryError):
    """Raised when a registry key expired before the relevant timestamp."""

    code = "EEXPIREDSIGNATUREKEY"


class InvalidSignatureError(RegistryError):
    """Raised when a registry signature does not verify."""

    code = "EINTEGRITYSIGNATURE"


class SubjectMismatchError(RegistryError):
    """Raised when an attestation subject does not match the package or digest."""

    code = "EATTESTATIONSUBJECT"


class VerificationFailureError(RegistryError):
    """Raised when the cryptographic proof of an attestation is rejected."""

    code = "EATTESTATIONVERIFY"


class NetworkError(RegistryError):
    """Raised on transport-level failures (timeouts, HTTP errors, bad JSON).

    Attributes:
        status_code: HTTP status code when the server answered, else None.
        url: The URL that was requested.
    """

    code = "ENETWORK"

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
        **context: str | None,
    ) -> None:
        super().__init__(message, **context)
        self.url = url
        self.status_code = status_code
