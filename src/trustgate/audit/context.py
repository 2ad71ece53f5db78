"""Per-invocation audit context.

One ``AuditContext`` is built for each audit run and handed to every check.
It owns the throttle, the HTTP connection pool, and the registry client, so
the packument cache and the registry key set live exactly as long as the
run and are shared by all checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from trustgate.config import AuditConfig
from trustgate.popular import POPULAR_PACKAGES
from trustgate.registry.attestations import BundleVerifier
from trustgate.registry.client import RegistryClient
from trustgate.registry.github import GitHubClient
from trustgate.registry.http_client import HttpClient
from trustgate.registry.vulnerabilities import VulnerabilityClient
from trustgate.throttle import Throttle


@dataclass
class AuditContext:
    """Shared collaborators for one audit run.

    Attributes:
        config: Resolved configuration.
        throttle: Scheduler shared by every outbound call.
        http: Throttled HTTP client.
        registry: Registry trust client (packument and key caches).
        github: GitHub lookups for the deprecation check.
        vulnerabilities: Snyk or OSV lookups for the vulnerabilities check.
        popular_packages: Corpus for typosquatting detection.
    """

    config: AuditConfig
    throttle: Throttle
    http: HttpClient
    registry: RegistryClient
    github: GitHubClient
    vulnerabilities: VulnerabilityClient
    popular_packages: tuple[str, ...] = field(default=POPULAR_PACKAGES)

    @classmethod
    def create(
        cls,
        config: AuditConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        bundle_verifier: BundleVerifier | None = None,
        popular_packages: tuple[str, ...] | None = None,
    ) -> AuditContext:
        """Wire up a context from configuration.

        Args:
            config: Settings; defaults are used when omitted.
            transport: Optional httpx transport (used by tests).
            bundle_verifier: Optional attestation proof check.
            popular_packages: Optional typosquatting corpus.
        """
        config = config or AuditConfig()
        throttle = Throttle(config.max_concurrent, config.min_delay_ms)
        http = HttpClient(throttle, timeout=config.timeout, transport=transport)
        registry = RegistryClient(
            http,
            registry_url=config.registry_url,
            downloads_url=config.downloads_api_url,
            bundle_verifier=bundle_verifier,
        )
        github = GitHubClient(http, api_url=config.github_api_url, token=config.github_token)
        vulnerabilities = VulnerabilityClient(
            http,
            osv_url=config.osv_api_url,
            snyk_url=config.snyk_api_url,
            snyk_token=config.snyk_token,
        )
        return cls(
            config=config,
            throttle=throttle,
            http=http,
            registry=registry,
            github=github,
            vulnerabilities=vulnerabilities,
            popular_packages=popular_packages if popular_packages is not None else POPULAR_PACKAGES,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> AuditContext:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
