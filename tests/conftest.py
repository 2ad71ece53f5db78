"""Shared fixtures for trustgate tests."""

from __future__ import annotations

import os
from typing import Callable

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from trustgate.audit.context import AuditContext
from trustgate.config import AuditConfig

from tests.helpers import FakeRegistry, generate_private_key


@pytest.fixture(scope="session")
def private_key() -> ec.EllipticCurvePrivateKey:
    """Registry signing key for the test session."""
    return generate_private_key()


@pytest.fixture(scope="session")
def other_private_key() -> ec.EllipticCurvePrivateKey:
    """A second key that the registry does not publish."""
    return generate_private_key()


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Empty fake registry; tests add routes."""
    return FakeRegistry()


@pytest.fixture
def make_ctx(fake_registry: FakeRegistry) -> Callable[..., AuditContext]:
    """Build an AuditContext wired to the fake registry.

    Contexts must be created inside the event loop that uses them, because
    the registry client caches asyncio tasks.
    """

    def _make(config: AuditConfig | None = None, **kwargs: object) -> AuditContext:
        return AuditContext.create(config, transport=fake_registry.transport, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def _clear_disable_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host MARSHALL_DISABLE_* variables from leaking into tests."""
    for var in list(os.environ):
        if var.startswith("MARSHALL_DISABLE_"):
            monkeypatch.delenv(var)
