"""Known-vulnerability check backed by Snyk or OSV."""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.exceptions import RegistryError
from trustgate.registry.models import PackageSpec
from trustgate.registry.vulnerabilities import SNYK_VULN_PAGE, VulnerabilityReport


class VulnerabilitiesCheck(Check):
    """Error when the resolved version has known advisories or is malware.

    A package the registry does not know, a specifier that resolves to
    nothing, or a lookup that fails is a warning: nothing was verified.
    """

    name = "vulnerabilities"
    category = Category.SUPPLY_CHAIN_SECURITY

    def title(self) -> str:
        return "Checking for known vulnerabilities"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        packument = await self.packument_or_none(pkg)
        version = self.resolve_or_none(packument, pkg) if packument is not None else None
        if version is None:
            return CheckResult.warning(
                f"Unable to query vulnerabilities: no published version of {pkg.name} "
                f"matches {pkg.version_specifier!r}"
            )

        try:
            report = await self.ctx.vulnerabilities.lookup(pkg.name, version)
        except RegistryError as exc:
            return CheckResult.warning(f"Unable to query vulnerabilities: {exc}")

        if report.malicious:
            return CheckResult.error(f"Malicious package found: {_reference(report)}")
        if report.count:
            if report.source == "snyk":
                return CheckResult.error(
                    f"{report.count} vulnerable path(s) found: {_reference(report)}"
                )
            return CheckResult.error(
                f"{report.count} vulnerabilities found by OSV for {report.name}: "
                f"{', '.join(report.ids)}"
            )
        return CheckResult.passed(0)


def _reference(report: VulnerabilityReport) -> str:
    if report.source == "snyk":
        return f"{SNYK_VULN_PAGE}{report.name}"
    return ", ".join(report.ids)
