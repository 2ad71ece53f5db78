"""Package age check: flags brand-new packages and long-unmaintained versions."""

from __future__ import annotations

from trustgate.audit.base import Check, days_since, round_days
from trustgate.audit.models import Category, CheckResult
from trustgate.registry.models import PackageSpec

PACKAGE_AGE_THRESHOLD: int = 22  # days
PACKAGE_AGE_UNMAINTAINED_RISK: int = 365  # days


class AgeCheck(Check):
    """Warn about packages created very recently or not released in a year.

    Missing ``time`` data is a warning: the age could not be established.
    """

    name = "age"
    category = Category.PACKAGE_HEALTH

    def title(self) -> str:
        return "Checking package maturity"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        packument = await self.packument_or_none(pkg)
        if packument is None or not packument.created:
            return CheckResult.warning("Could not determine package age")

        now = self.now()
        try:
            created_days = days_since(packument.created, now)
        except ValueError:
            return CheckResult.warning("Could not determine package age")
        if created_days < PACKAGE_AGE_THRESHOLD:
            return CheckResult.error(
                f"Detected a newly published package (created < {PACKAGE_AGE_THRESHOLD} days) "
                "act carefully"
            )

        version = self.resolve_or_none(packument, pkg)
        released = packument.time.get(version) if version else None
        if not released:
            return CheckResult.warning("Could not determine package version release date")
        try:
            version_days = days_since(released, now)
        except ValueError:
            return CheckResult.warning("Could not determine package version release date")

        if version_days >= PACKAGE_AGE_UNMAINTAINED_RISK:
            rounded = round_days(version_days)
            if rounded >= 365:
                ago = f"{rounded // 365} years"
            else:
                ago = f"{rounded} days"
            return CheckResult.warning(f"Detected an old package (created {ago} ago)")

        return CheckResult.passed()
