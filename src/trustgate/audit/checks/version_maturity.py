"""Version maturity check: flags versions released within the last week."""

from __future__ import annotations

from trustgate.audit.base import Check, days_since, round_days
from trustgate.audit.models import Category, CheckResult
from trustgate.registry.models import PackageSpec

VERSION_AGE_THRESHOLD: int = 7  # days


class VersionMaturityCheck(Check):
    """Error on versions too new to have had community review.

    Unlike most checks, a missing release date is an error here.
    """

    name = "version_maturity"
    category = Category.SUPPLY_CHAIN_SECURITY

    def title(self) -> str:
        return "Checking version maturity"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        packument = await self.packument_or_none(pkg)
        if packument is None or not packument.time:
            return CheckResult.error("Could not determine package version information")

        version = self.resolve_or_none(packument, pkg)
        if not version or version not in packument.time:
            return CheckResult.error(f"Could not determine release date for version {version}")

        elapsed = days_since(packument.time[version], self.now())
        days = round_days(elapsed)
        if days < VERSION_AGE_THRESHOLD:
            if days <= 0:
                ago = f"{max(round_days(elapsed * 24), 0)} hours"
            elif days == 1:
                ago = "1 day"
            else:
                ago = f"{days} days"
            return CheckResult.error(
                f"Detected a recently published version (published {ago} ago) - "
                "consider waiting for community review"
            )

        return CheckResult.passed(version)
