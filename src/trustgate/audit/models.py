"""Data models for audit results: CheckStatus, CheckResult, AuditReport.

A ``CheckResult`` is the tagged outcome of one check for one package:
exactly one of pass, warning or error. The orchestrator folds results into
one ``CheckReport`` per check and collects those into an ``AuditReport``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CheckStatus(IntEnum):
    """Outcome of a check. Ordered so that ``max()`` gives the worst outcome."""

    PASS = 0
    WARNING = 1
    ERROR = 2


class Category(str, Enum):
    """Grouping of checks for display."""

    SUPPLY_CHAIN_SECURITY = "Supply Chain Security"
    PACKAGE_HEALTH = "Package Health"
    MALWARE_DETECTION = "Malware Detection"


# ---------------------------------------------------------------------------
# CheckResult
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check for one package.

    Use the ``passed``, ``warning`` and ``error`` constructors rather than
    building instances directly.

    Attributes:
        status: PASS, WARNING or ERROR.
        message: Explanation for warnings and errors, empty for passes.
        data: Optional payload a passing check wants to expose.
    """

    status: CheckStatus
    message: str = ""
    data: Any = field(default=None, compare=False)

    @classmethod
    def passed(cls, data: Any = None) -> CheckResult:  # noqa: ANN401
        return cls(CheckStatus.PASS, data=data)

    @classmethod
    def warning(cls, message: str) -> CheckResult:
        return cls(CheckStatus.WARNING, message)

    @classmethod
    def error(cls, message: str) -> CheckResult:
        return cls(CheckStatus.ERROR, message)

    @property
    def is_pass(self) -> bool:
        return self.status is CheckStatus.PASS

    @property
    def is_warning(self) -> bool:
        return self.status is CheckStatus.WARNING

    @property
    def is_error(self) -> bool:
        return self.status is CheckStatus.ERROR


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageMessage:
    """A warning or error attributed to a package."""

    package: str
    message: str


@dataclass
class CheckReport:
    """Aggregated outcomes of one check across all packages.

    Attributes:
        name: Check name.
        category: Check category.
        title: Human-readable title of the check.
        results: Outcome per package string.
    """

    name: str
    category: Category
    title: str = ""
    results: dict[str, CheckResult] = field(default_factory=dict)

    def record(self, package: str, result: CheckResult) -> None:
        """Store the outcome for ``package``.

        Raises:
            ValueError: If an outcome was already recorded for ``package``.
        """
        if package in self.results:
            raise ValueError(f"{self.name}: outcome for {package} already recorded")
        self.results[package] = result

    @property
    def status(self) -> CheckStatus:
        if not self.results:
            return CheckStatus.PASS
        return max(r.status for r in self.results.values())

    @property
    def errors(self) -> list[PackageMessage]:
        return [
            PackageMessage(pkg, r.message) for pkg, r in self.results.items() if r.is_error
        ]

    @property
    def warnings(self) -> list[PackageMessage]:
        return [
            PackageMessage(pkg, r.message) for pkg, r in self.results.items() if r.is_warning
        ]

    @property
    def data(self) -> dict[str, Any]:
        return {pkg: r.data for pkg, r in self.results.items() if r.is_pass}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category.value,
            "title": self.title,
            "status": self.status.name.lower(),
            "errors": [{"pkg": m.package, "message": m.message} for m in self.errors],
            "warnings": [{"pkg": m.package, "message": m.message} for m in self.warnings],
        }


@dataclass
class AuditReport:
    """Mapping of check name to ``CheckReport`` for one audit run."""

    checks: dict[str, CheckReport] = field(default_factory=dict)

    def __getitem__(self, name: str) -> CheckReport:
        return self.checks[name]

    def __contains__(self, name: object) -> bool:
        return name in self.checks

    def __len__(self) -> int:
        return len(self.checks)

    @property
    def has_errors(self) -> bool:
        return any(c.errors for c in self.checks.values())

    @property
    def has_warnings(self) -> bool:
        return any(c.warnings for c in self.checks.values())

    @property
    def error_count(self) -> int:
        return sum(len(c.errors) for c in self.checks.values())

    @property
    def warning_count(self) -> int:
        return sum(len(c.warnings) for c in self.checks.values())

    def to_dict(self) -> dict[str, Any]:
        return {name: report.to_dict() for name, report in self.checks.items()}
