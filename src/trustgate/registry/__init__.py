"""Registry trust client for npm-compatible registries.

Fetches package documents and signing keys, resolves version specifiers to
concrete versions, and verifies registry signatures and build attestations.

Public API::

    from trustgate.registry import RegistryClient, HttpClient, PackageSpec
    from trustgate.registry.semver import max_satisfying
"""

from __future__ import annotations

from trustgate.registry.client import RegistryClient, resolve_version
from trustgate.registry.http_client import HttpClient
from trustgate.registry.models import (
    AttestationBundle,
    Manifest,
    PackageSpec,
    Packument,
    RegistryKey,
    Signature,
    Statement,
)

__all__ = [
    "AttestationBundle",
    "HttpClient",
    "Manifest",
    "PackageSpec",
    "Packument",
    "RegistryClient",
    "RegistryKey",
    "Signature",
    "Statement",
    "resolve_version",
]
