"""Registry signature check.

Verifies the registry's ECDSA signatures over ``"{name}@{version}:{integrity}"``
for the exact version that would be installed.

Policy: an invalid signature is an error. Anything that merely prevents
verification (unreachable registry, unknown, expired or unreadable key,
unsigned version) is a warning.
"""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.exceptions import ExpiredKeyError, InvalidSignatureError, RegistryError
from trustgate.registry.models import PackageSpec


class SignaturesCheck(Check):
    """Verify registry signatures for the resolved package version."""

    name = "signatures"
    category = Category.SUPPLY_CHAIN_SECURITY

    def title(self) -> str:
        return "Verifying registry signatures for package"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        registry = self.ctx.registry
        try:
            keys = await registry.fetch_keys()
        except RegistryError as exc:
            return CheckResult.warning(f"Error fetching registry keys: {exc}")

        try:
            manifest = await registry.get_manifest(pkg)
            verified = registry.verify_signatures(manifest, keys)
        except ExpiredKeyError:
            return CheckResult.warning("Package is signed with an expired key")
        except InvalidSignatureError as exc:
            return CheckResult.error(f"Package has an invalid registry signature: {exc}")
        except RegistryError as exc:
            return CheckResult.warning(f"Unable to verify package signature on registry: {exc}")

        return CheckResult.passed(verified)
