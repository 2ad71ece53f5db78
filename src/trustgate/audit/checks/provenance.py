"""Build provenance (attestation) check.

Fetches the registry's attestation bundles for the resolved version and
verifies that each one names this exact package version and tarball digest
and carries a valid signature.

Policy: a bundle that is present but does not check out (wrong subject,
rejected proof) is an error. Missing attestations, unknown keys and
network failures are warnings: many legitimate packages are published
without provenance.
"""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.exceptions import RegistryError, SubjectMismatchError, VerificationFailureError
from trustgate.registry.models import PackageSpec


class ProvenanceCheck(Check):
    """Verify attestations (provenance and publish) for the resolved version."""

    name = "provenance"
    category = Category.SUPPLY_CHAIN_SECURITY

    def title(self) -> str:
        return "Verifying package provenance"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        registry = self.ctx.registry
        try:
            keys = await registry.fetch_keys()
            manifest = await registry.get_manifest(pkg)
            verified = await registry.verify_attestations(manifest, keys)
        except (SubjectMismatchError, VerificationFailureError) as exc:
            detail = f" (predicate {exc.predicate_type}, keyid {exc.keyid})" if exc.predicate_type else ""
            return CheckResult.error(f"Unable to verify provenance: {exc}{detail}")
        except RegistryError as exc:
            return CheckResult.warning(f"Unable to verify provenance: {exc}")

        return CheckResult.passed(verified)
