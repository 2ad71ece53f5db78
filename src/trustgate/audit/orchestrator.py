"""Audit orchestrator: run every enabled check for every package.

Each (check, package) pair is an independent asyncio task. A pair's
outcome never affects its siblings: an exception escaping ``validate`` is
recorded as an error for that pair alone. ``run_all`` returns only after
every pair has a terminal outcome.

Usage::

    report = asyncio.run(audit([PackageSpec.parse("express@^4")]))
    if report.has_errors:
        ...
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from trustgate.audit.base import Check
from trustgate.audit.context import AuditContext
from trustgate.audit.models import AuditReport, CheckReport, CheckResult
from trustgate.config import AuditConfig
from trustgate.registry.models import PackageSpec

logger = logging.getLogger(__name__)


async def _run_one(check: Check, pkg: PackageSpec) -> CheckResult:
    try:
        result = await check.validate(pkg)
    except Exception as exc:
        logger.warning(
            "Check %s raised for %s", check.name, pkg.package_string, exc_info=True
        )
        return CheckResult.error(str(exc) or type(exc).__name__)
    if not isinstance(result, CheckResult):
        return CheckResult.passed(result)
    return result


async def run_all(packages: Sequence[PackageSpec], checks: Sequence[Check]) -> AuditReport:
    """Run every enabled check against every package concurrently.

    Disabled checks are skipped entirely and do not appear in the report.

    Args:
        packages: Requested packages.
        checks: Checks to run.

    Returns:
        An ``AuditReport`` with one outcome per (check, package) pair.
    """
    report = AuditReport()
    # Duplicate requests would produce two outcomes for the same pair.
    packages = list(dict.fromkeys(packages))
    if not packages:
        return report

    enabled: list[Check] = []
    for check in checks:
        if check.is_enabled():
            enabled.append(check)
            report.checks[check.name] = CheckReport(
                name=check.name, category=check.category, title=check.title()
            )
        else:
            logger.info("Check %s disabled, skipping", check.name)

    pairs = [(check, pkg) for check in enabled for pkg in packages]
    results = await asyncio.gather(*(_run_one(check, pkg) for check, pkg in pairs))

    for (check, pkg), result in zip(pairs, results):
        report.checks[check.name].record(pkg.package_string, result)
    return report


def default_checks(ctx: AuditContext) -> list[Check]:
    """Instantiate every built-in check bound to ``ctx``."""
    from trustgate.audit.checks import ALL_CHECKS

    return [cls(ctx) for cls in ALL_CHECKS]


async def audit(
    packages: Sequence[PackageSpec],
    config: AuditConfig | None = None,
    *,
    ctx: AuditContext | None = None,
) -> AuditReport:
    """Audit ``packages`` with the built-in checks.

    Builds a fresh ``AuditContext`` (closed afterwards) unless one is given.
    """
    if not packages:
        return AuditReport()
    if ctx is not None:
        return await run_all(packages, default_checks(ctx))
    async with AuditContext.create(config) as owned:
        return await run_all(packages, default_checks(owned))
