"""Rich output formatting for audit reports.

Status Color Mapping:
    ERROR = bold red, WARNING = yellow, PASS = green
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from trustgate.audit import AuditReport, CheckStatus, PackageMessage

_STATUS_STYLES: dict[CheckStatus, str] = {
    CheckStatus.ERROR: "bold red",
    CheckStatus.WARNING: "yellow",
    CheckStatus.PASS: "green",
}

console = Console()


def status_style(status: CheckStatus) -> str:
    """Return the Rich style string for a check status."""
    return _STATUS_STYLES.get(status, "white")


def _message_line(check_name: str, msg: PackageMessage) -> str:
    # Registry messages may contain brackets; keep them out of Rich markup.
    return escape(f"[{check_name}] {msg.package}: {msg.message}")


def print_report(report: AuditReport) -> None:
    """Print one row per check plus every error and warning message."""
    if not len(report):
        console.print("[dim]No checks were run.[/dim]")
        return

    table = Table(title="TrustGate Audit", show_header=True, header_style="bold")
    table.add_column("Check", style="bold")
    table.add_column("Category", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Errors", justify="right")
    table.add_column("Warnings", justify="right")

    for check in report.checks.values():
        status = check.status
        table.add_row(
            check.name,
            check.category.value,
            Text(status.name, style=status_style(status)),
            str(len(check.errors)),
            str(len(check.warnings)),
        )
    console.print(table)

    for check in report.checks.values():
        for msg in check.errors:
            console.print("[bold red]✖[/bold red] " + _message_line(check.name, msg))
        for msg in check.warnings:
            console.print("[yellow]⚠[/yellow] " + _message_line(check.name, msg))

    summary = f"{report.error_count} error(s), {report.warning_count} warning(s)"
    style = "bold red" if report.has_errors else ("yellow" if report.has_warnings else "bold green")
    console.print(Text(summary, style=style))
