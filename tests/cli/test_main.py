"""Tests for the trustgate CLI (click CliRunner, audit patched out)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from trustgate import __version__
from trustgate.audit.models import AuditReport, Category, CheckReport, CheckResult
from trustgate.cli.main import cli
from trustgate.config import AuditConfig
from trustgate.registry.models import PackageSpec


def _report(*results: tuple[str, str, CheckResult]) -> AuditReport:
    report = AuditReport()
    for check, pkg, result in results:
        report.checks.setdefault(check, CheckReport(check, Category.SUPPLY_CHAIN_SECURITY, check))
        report.checks[check].record(pkg, result)
    return report


@dataclass
class AuditStub:
    """Stands in for the audit entry point and records each call."""

    report: AuditReport = field(
        default_factory=lambda: _report(("scripts", "pkg@latest", CheckResult.passed()))
    )
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def __call__(self, specs: list[PackageSpec], config: AuditConfig) -> AuditReport:
        self.calls.append({"specs": specs, "config": config})
        return self.report


@pytest.fixture
def stub(monkeypatch: pytest.MonkeyPatch) -> AuditStub:
    audit_stub = AuditStub()
    monkeypatch.setattr("trustgate.cli.main.audit", audit_stub)
    return audit_stub


class TestAuditCommand:
    """trustgate audit PACKAGES..."""

    def test_clean_report_exits_zero(self, stub: AuditStub) -> None:
        result = CliRunner().invoke(cli, ["audit", "pkg"])
        assert result.exit_code == 0, result.output
        assert stub.calls[0]["specs"] == [PackageSpec("pkg", "latest")]
        assert "0 error(s), 0 warning(s)" in result.output

    def test_errors_exit_one(self, stub: AuditStub) -> None:
        stub.report = _report(
            ("scripts", "pkg@latest", CheckResult.error("postinstall: [curl] | sh")),
        )
        result = CliRunner().invoke(cli, ["audit", "pkg"])
        assert result.exit_code == 1
        assert "[scripts] pkg@latest: postinstall: [curl] | sh" in result.output

    def test_warnings_alone_exit_zero(self, stub: AuditStub) -> None:
        stub.report = _report(("downloads", "pkg@latest", CheckResult.warning("few downloads")))
        result = CliRunner().invoke(cli, ["audit", "pkg"])
        assert result.exit_code == 0
        assert "few downloads" in result.output

    def test_json_output(self, stub: AuditStub) -> None:
        stub.report = _report(("age", "pkg@latest", CheckResult.warning("old")))
        result = CliRunner().invoke(cli, ["audit", "pkg", "--format", "json"])
        data = json.loads(result.output)
        assert data["age"]["status"] == "warning"
        assert data["age"]["warnings"] == [{"pkg": "pkg@latest", "message": "old"}]

    def test_parses_scoped_specs(self, stub: AuditStub) -> None:
        CliRunner().invoke(cli, ["audit", "@scope/pkg@^1.2.0", "lodash@4.17.21"])
        assert stub.calls[0]["specs"] == [
            PackageSpec("@scope/pkg", "^1.2.0"),
            PackageSpec("lodash", "4.17.21"),
        ]

    def test_disable_option(self, stub: AuditStub) -> None:
        CliRunner().invoke(cli, ["audit", "pkg", "--disable", "age", "--disable", "downloads"])
        assert stub.calls[0]["config"].disabled_checks >= {"age", "downloads"}

    def test_config_file(self, stub: AuditStub, tmp_path: Path) -> None:
        path = tmp_path / "trustgate.yaml"
        path.write_text("max_concurrent: 2\n", encoding="utf-8")
        CliRunner().invoke(cli, ["audit", "pkg", "--config", str(path)])
        assert stub.calls[0]["config"].max_concurrent == 2

    def test_invalid_config_exits_two(self, stub: AuditStub, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- not\n- a mapping\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["audit", "pkg", "--config", str(path)])
        assert result.exit_code == 2
        assert stub.calls == []

    def test_invalid_spec_exits_two(self, stub: AuditStub) -> None:
        result = CliRunner().invoke(cli, ["audit", "@scope/"])
        assert result.exit_code == 2
        assert stub.calls == []

    def test_packages_required(self) -> None:
        result = CliRunner().invoke(cli, ["audit"])
        assert result.exit_code == 2


class TestChecksCommand:
    def test_lists_every_check(self) -> None:
        result = CliRunner().invoke(cli, ["checks"])
        assert result.exit_code == 0
        for name in ("typosquatting", "signatures", "provenance", "scripts"):
            assert name in result.output

    def test_shows_disabled_state(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MARSHALL_DISABLE_SCRIPTS", "1")
        result = CliRunner().invoke(cli, ["checks"])
        line = next(li for li in result.output.splitlines() if li.startswith("scripts"))
        assert "disabled" in line


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert __version__ in result.output
