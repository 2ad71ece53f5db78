"""TrustGate CLI -- audit npm packages before installing them.

Commands:
    audit   -- Run every enabled check against the given package specs.
    checks  -- List the available checks.

Usage::

    trustgate audit express lodash@^4.17.0
    trustgate audit @scope/pkg@latest --format json
    trustgate audit left-pad --disable downloads --disable age
    trustgate checks
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.logging import RichHandler

from trustgate import __version__
from trustgate.audit import AuditContext, AuditReport, audit
from trustgate.audit.checks import ALL_CHECKS
from trustgate.config import load_config
from trustgate.exceptions import ConfigError
from trustgate.registry.models import PackageSpec


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("trustgate")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not logger.handlers:
        logger.addHandler(RichHandler(show_path=False, rich_tracebacks=verbose))


def _format_json_output(report: AuditReport) -> None:
    click.echo(json.dumps(report.to_dict(), indent=2))


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """TrustGate: supply-chain trust audits for npm package installs.

    Checks each requested package for invalid or missing registry
    signatures, unverifiable provenance, typosquatting, install scripts,
    deprecation, and suspicious publishing patterns.
    """


@cli.command("audit")
@click.argument("packages", nargs=-1, required=True)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file.",
)
@click.option("--disable", multiple=True, help="Disable a check by name (repeatable).")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def audit_command(
    packages: tuple[str, ...],
    output_format: str,
    config_path: Path | None,
    disable: tuple[str, ...],
    verbose: bool,
) -> None:
    """Audit PACKAGES (``name`` or ``name@spec``) before installation.

    Exits 1 if any check reports an error, 0 otherwise.
    """
    _configure_logging(verbose)
    try:
        config = load_config(config_path)
        specs = [PackageSpec.parse(p) for p in packages]
    except (ConfigError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    if disable:
        config = config.with_disabled(*disable)

    report = asyncio.run(audit(specs, config))

    if output_format == "json":
        _format_json_output(report)
    else:
        from trustgate.cli.output import print_report
        print_report(report)

    sys.exit(1 if report.has_errors else 0)


@cli.command("checks")
def checks_command() -> None:
    """List the available checks and how to disable them."""
    ctx = AuditContext.create()
    for check in (cls(ctx) for cls in ALL_CHECKS):
        state = "enabled" if check.is_enabled() else "disabled"
        click.echo(f"{check.name:<18} {check.category.value:<24} {state:<9} {check.title()}")
