"""Audit orchestration: the check contract, results, and the runner.

Submodules:
    models        -- CheckStatus, CheckResult, CheckReport, AuditReport
    base          -- Check (the contract every check implements)
    context       -- AuditContext (per-run collaborators)
    orchestrator  -- run_all, audit, default_checks
    checks        -- built-in checks
"""

from trustgate.audit.base import Check
from trustgate.audit.context import AuditContext
from trustgate.audit.models import (
    AuditReport,
    Category,
    CheckReport,
    CheckResult,
    CheckStatus,
    PackageMessage,
)
from trustgate.audit.orchestrator import audit, default_checks, run_all

__all__ = [
    "AuditContext",
    "AuditReport",
    "Category",
    "Check",
    "CheckReport",
    "CheckResult",
    "CheckStatus",
    "PackageMessage",
    "audit",
    "default_checks",
    "run_all",
]
