"""The check contract shared by every audit check.

A check inspects one requested package and returns a ``CheckResult``. Every
check exposes the same surface (``name``, ``category``, ``title()`` and
``validate(pkg)``) so the orchestrator can run them uniformly, whether or
not they talk to the registry.

Missing-data policy is decided per check and is deliberately NOT uniform:

- ``deprecation`` and ``scripts`` PASS when registry data is missing,
  because they only flag on explicit evidence.
- ``age``, ``signatures`` and ``vulnerabilities`` WARN when data is
  missing, because the absence of data means the property could not be
  verified.
- ``version_maturity`` and ``author`` ERROR when the release date or the
  publisher cannot be determined.

Do not unify these behaviours in the base class.

Failures that only prevent verification are warnings. An invalid
signature, and an attestation that is rejected or names the wrong subject,
are errors.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from trustgate.audit.models import Category, CheckResult
from trustgate.config import is_check_disabled
from trustgate.exceptions import NotFoundError
from trustgate.registry.client import resolve_version
from trustgate.registry.models import PackageSpec, Packument, parse_timestamp

if TYPE_CHECKING:
    from trustgate.audit.context import AuditContext

logger = logging.getLogger(__name__)

SECONDS_PER_DAY: int = 24 * 60 * 60


def days_since(timestamp: str, now: datetime | None = None) -> float:
    """Fractional days elapsed since an ISO-8601 timestamp (negative if in the future).

    Raises:
        ValueError: If ``timestamp`` cannot be parsed.
    """
    moment = parse_timestamp(timestamp)
    return ((now or datetime.now(timezone.utc)) - moment).total_seconds() / SECONDS_PER_DAY


def round_days(days: float) -> int:
    """Round half up, so 2.5 days reads as 3."""
    return int(math.floor(days + 0.5))


class Check(ABC):
    """Abstract base class for audit checks.

    Subclasses set ``name`` and ``category`` and implement ``title`` and
    ``validate``. ``validate`` returns a ``CheckResult``; an exception that
    escapes it is recorded by the orchestrator as an error.

    ``SignaturesCheck`` deliberately tightens its inherited policy: an
    invalid signature is an error, not a warning.

    Args:
        ctx: The audit context providing registry access and configuration.
    """

    name: str = ""
    category: Category = Category.PACKAGE_HEALTH

    def __init__(self, ctx: AuditContext) -> None:
        self.ctx = ctx

    @abstractmethod
    def title(self) -> str:
        """Short description shown while the check runs."""

    @abstractmethod
    async def validate(self, pkg: PackageSpec) -> CheckResult:
        """Inspect ``pkg`` and classify it as pass, warning or error."""

    def is_enabled(self) -> bool:
        """False when disabled by configuration or its environment flag."""
        if self.ctx.config.is_disabled(self.name):
            return False
        return not is_check_disabled(self.name)

    # -- helpers shared by registry-backed checks --------------------------

    async def packument_or_none(self, pkg: PackageSpec) -> Packument | None:
        """Fetch the packument, returning None if the registry has no such package."""
        try:
            return await self.ctx.registry.get_packument(pkg.name)
        except NotFoundError:
            logger.debug("%s: no packument for %s", self.name, pkg.name)
            return None

    @staticmethod
    def resolve_or_none(packument: Packument, pkg: PackageSpec) -> str | None:
        """Resolve ``pkg``'s specifier, returning None if nothing matches."""
        try:
            return resolve_version(packument, pkg.version_specifier)
        except NotFoundError:
            return None

    @staticmethod
    def now() -> datetime:
        return datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
