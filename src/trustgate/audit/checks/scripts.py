"""Install-script check: flags lifecycle scripts that run on install."""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.registry.models import PackageSpec

# Scripts npm runs automatically during ``npm install``.
BLACKLISTED_SCRIPTS: tuple[str, ...] = ("install", "preinstall", "postinstall")


class ScriptsCheck(Check):
    """Error when the resolved version declares install-time scripts.

    Missing registry data passes: there is no evidence of a script.
    """

    name = "scripts"
    category = Category.MALWARE_DETECTION

    def title(self) -> str:
        return "Checking package for pre/post install scripts"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        packument = await self.packument_or_none(pkg)
        if packument is None:
            return CheckResult.passed()

        version = self.resolve_or_none(packument, pkg)
        if version is None:
            return CheckResult.passed()

        scripts = packument.version_data(version).get("scripts")
        if not isinstance(scripts, dict):
            return CheckResult.passed()

        for script_name in BLACKLISTED_SCRIPTS:
            content = scripts.get(script_name)
            if content is not None and str(content):
                return CheckResult.error(
                    "Detected a possible malicious intent script, audit required: "
                    f"{script_name}: {content}"
                )
        return CheckResult.passed()
