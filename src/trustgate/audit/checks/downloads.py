"""Download popularity check."""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.exceptions import RegistryError
from trustgate.registry.models import PackageSpec

DOWNLOAD_COUNT_THRESHOLD: int = 10_000  # downloads last month


class DownloadsCheck(Check):
    """Warn about packages with few downloads in the last month."""

    name = "downloads"
    category = Category.PACKAGE_HEALTH

    def title(self) -> str:
        return "Checking package download popularity"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        try:
            count = await self.ctx.registry.get_download_count(pkg.name)
        except RegistryError as exc:
            return CheckResult.warning(f"Could not determine download count: {exc}")

        if count is None:
            return CheckResult.warning("Could not determine download count")
        if count < DOWNLOAD_COUNT_THRESHOLD:
            return CheckResult.warning(
                f"Detected a package with a low download count: {count:,} downloads last month"
            )
        return CheckResult.passed(count)
