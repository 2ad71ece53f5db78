"""Audit configuration: defaults, YAML config files, and environment.

Configuration is resolved in three layers, later layers winning:

1. Built-in defaults on ``AuditConfig``.
2. An optional YAML file (``--config`` on the CLI).
3. Environment variables.

Recognised environment variables:

- ``TRUSTGATE_REGISTRY`` -- registry base URL.
- ``TRUSTGATE_MAX_CONCURRENT`` -- throttle concurrency limit.
- ``TRUSTGATE_MIN_DELAY_MS`` -- throttle pacing in milliseconds.
- ``GITHUB_TOKEN`` -- token for GitHub API lookups.
- ``SNYK_API_TOKEN`` or ``SNYK_TOKEN`` -- Snyk token; without one, OSV is queried.
- ``SNYK_API_URL`` or ``SNYK_API`` -- Snyk vulnerability endpoint.
- ``MARSHALL_DISABLE_<NAME>`` -- any non-empty value disables check ``name``.

Example YAML::

    registry_url: https://registry.npmjs.org
    max_concurrent: 3
    min_delay_ms: 50
    disabled_checks: [downloads, typosquatting]
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from trustgate.exceptions import ConfigError
from trustgate.registry.client import DEFAULT_DOWNLOADS_API, DEFAULT_REGISTRY
from trustgate.registry.github import GITHUB_API_URL
from trustgate.registry.http_client import DEFAULT_TIMEOUT
from trustgate.registry.vulnerabilities import OSV_QUERY_URL, SNYK_API_URL
from trustgate.throttle import DEFAULT_MAX_CONCURRENT, DEFAULT_MIN_DELAY

DISABLE_PREFIX: str = "MARSHALL_DISABLE_"


def disable_flag_name(check_name: str) -> str:
    """Environment variable that disables ``check_name``."""
    return f"{DISABLE_PREFIX}{check_name.upper()}"


def is_check_disabled(check_name: str, environ: Mapping[str, str] | None = None) -> bool:
    """Return True if the disable flag for ``check_name`` is set to a non-empty value."""
    env = os.environ if environ is None else environ
    return bool(env.get(disable_flag_name(check_name)))


@dataclass(frozen=True)
class AuditConfig:
    """Settings for one audit invocation.

    Attributes:
        registry_url: npm-compatible registry base URL.
        downloads_api_url: Downloads statistics API base URL.
        github_api_url: GitHub REST API base URL.
        github_token: Optional GitHub token.
        osv_api_url: OSV query endpoint.
        snyk_api_url: Snyk npm vulnerability endpoint.
        snyk_token: Optional Snyk token; selects Snyk over OSV.
        max_concurrent: Maximum simultaneous outbound calls.
        min_delay_ms: Minimum milliseconds between dispatches on a slot.
        timeout: Per-request timeout in seconds.
        disabled_checks: Names of checks to skip.
    """

    registry_url: str = DEFAULT_REGISTRY
    downloads_api_url: str = DEFAULT_DOWNLOADS_API
    github_api_url: str = GITHUB_API_URL
    github_token: str | None = None
    osv_api_url: str = OSV_QUERY_URL
    snyk_api_url: str = SNYK_API_URL
    snyk_token: str | None = None
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    min_delay_ms: int = DEFAULT_MIN_DELAY
    timeout: float = DEFAULT_TIMEOUT
    disabled_checks: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not isinstance(self.max_concurrent, int) or self.max_concurrent <= 0:
            raise ConfigError(f"max_concurrent must be a positive int, got {self.max_concurrent!r}")
        if not isinstance(self.min_delay_ms, int) or self.min_delay_ms < 0:
            raise ConfigError(f"min_delay_ms must be a non-negative int, got {self.min_delay_ms!r}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout!r}")

    def is_disabled(self, check_name: str) -> bool:
        return check_name.lower() in {n.lower() for n in self.disabled_checks}

    def with_disabled(self, *names: str) -> AuditConfig:
        return replace(self, disabled_checks=self.disabled_checks | frozenset(names))

    # -- loaders -----------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: AuditConfig | None = None) -> AuditConfig:
        """Build a config from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a value has the wrong type.
        """
        known = {f.name for f in fields(cls)}
        updates: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key == "disabled_checks":
                if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
                    raise ConfigError("disabled_checks must be a list of check names")
                value = frozenset(str(v) for v in value)
            updates[key] = value
        return replace(base or cls(), **updates)

    @classmethod
    def from_file(cls, path: Path, base: AuditConfig | None = None) -> AuditConfig:
        """Load a YAML config file.

        Raises:
            ConfigError: If the file is unreadable, not YAML, or not a mapping.
        """
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            return base or cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_mapping(data, base)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: AuditConfig | None = None,
    ) -> AuditConfig:
        """Overlay environment variables onto ``base`` (or the defaults).

        Raises:
            ConfigError: If a numeric variable is not an integer.
        """
        env = os.environ if environ is None else environ
        config = base or cls()
        updates: dict[str, Any] = {}

        if env.get("TRUSTGATE_REGISTRY"):
            updates["registry_url"] = env["TRUSTGATE_REGISTRY"]
        if env.get("GITHUB_TOKEN"):
            updates["github_token"] = env["GITHUB_TOKEN"]
        snyk_token = env.get("SNYK_API_TOKEN") or env.get("SNYK_TOKEN")
        if snyk_token:
            updates["snyk_token"] = snyk_token
        snyk_url = env.get("SNYK_API_URL") or env.get("SNYK_API")
        if snyk_url:
            updates["snyk_api_url"] = snyk_url
        for var, attr in (
            ("TRUSTGATE_MAX_CONCURRENT", "max_concurrent"),
            ("TRUSTGATE_MIN_DELAY_MS", "min_delay_ms"),
        ):
            if env.get(var):
                try:
                    updates[attr] = int(env[var])
                except ValueError as exc:
                    raise ConfigError(f"{var} must be an integer, got {env[var]!r}") from exc

        disabled = {
            var[len(DISABLE_PREFIX):].lower()
            for var, value in env.items()
            if var.startswith(DISABLE_PREFIX) and value
        }
        if disabled:
            updates["disabled_checks"] = config.disabled_checks | frozenset(disabled)

        return replace(config, **updates)


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AuditConfig:
    """Resolve defaults, then the optional YAML file, then the environment."""
    config = AuditConfig.from_file(path) if path is not None else AuditConfig()
    return AuditConfig.from_env(environ, base=config)
