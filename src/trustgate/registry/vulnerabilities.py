"""Known-vulnerability lookups for npm packages.

Queries Snyk when an API token is configured and the public OSV database
otherwise. Both answer with the advisories recorded for one exact
``name@version``; this module reduces them to a ``VulnerabilityReport``.

OSV marks malicious-package advisories with ``MAL-`` ids. Snyk flags them
with ``isMaliciousPackage``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from trustgate.exceptions import NetworkError, NotFoundError
from trustgate.registry.http_client import HttpClient

logger = logging.getLogger(__name__)

OSV_QUERY_URL: str = "https://api.osv.dev/v1/query"
SNYK_API_URL: str = "https://snyk.io/api/v1/vuln/npm"
SNYK_VULN_PAGE: str = "https://snyk.io/vuln/npm:"

OSV_MALICIOUS_PREFIX: str = "MAL-"


@dataclass(frozen=True)
class VulnerabilityReport:
    """Advisories found for one package version.

    Attributes:
        name: Package name.
        version: Version that was queried.
        source: ``"snyk"`` or ``"osv"``.
        ids: Advisory identifiers, in the order the source returned them.
        malicious: True if the source classifies the package as malware.
    """

    name: str
    version: str
    source: str
    ids: tuple[str, ...] = ()
    malicious: bool = False

    @property
    def count(self) -> int:
        return len(self.ids)


class VulnerabilityClient:
    """Snyk-or-OSV vulnerability lookups over the shared HTTP client.

    Args:
        http: Throttled HTTP client.
        osv_url: OSV ``/v1/query`` endpoint.
        snyk_url: Snyk npm vulnerability endpoint.
        snyk_token: Snyk API token; OSV is used when it is unset.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        osv_url: str = OSV_QUERY_URL,
        snyk_url: str = SNYK_API_URL,
        snyk_token: str | None = None,
    ) -> None:
        self.http = http
        self.osv_url = osv_url
        self.snyk_url = snyk_url.rstrip("/")
        self.snyk_token = snyk_token

    async def lookup(self, name: str, version: str) -> VulnerabilityReport:
        """Query the configured source for ``name@version``.

        Raises:
            NetworkError: If the source cannot be reached or answers with an error.
            NotFoundError: If Snyk answers without vulnerability information.
        """
        if self.snyk_token:
            return await self.query_snyk(name, version)
        return await self.query_osv(name, version)

    async def query_snyk(self, name: str, version: str) -> VulnerabilityReport:
        package_id = f"{name}@{version}"
        url = f"{self.snyk_url}/{quote(package_id, safe='')}"
        resp = await self.http.get(
            url,
            headers={
                "Accept": "application/json",
                "Authorization": f"token {self.snyk_token}",
            },
        )
        if resp.is_error:
            raise NetworkError(
                f"Snyk API request failed with status {resp.status_code}",
                url=url,
                status_code=resp.status_code,
                package_id=package_id,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise NetworkError(f"Invalid JSON from {url}", url=url, package_id=package_id) from exc

        vulns = data.get("vulnerabilities") if isinstance(data, dict) else None
        if not isinstance(vulns, list):
            raise NotFoundError(
                "Unable to query vulnerabilities for packages",
                package_id=package_id,
            )
        return VulnerabilityReport(
            name=name,
            version=version,
            source="snyk",
            ids=_advisory_ids(vulns),
            malicious=bool(data.get("isMaliciousPackage")),
        )

    async def query_osv(self, name: str, version: str) -> VulnerabilityReport:
        body = {"version": version, "package": {"name": name, "ecosystem": "npm"}}
        data = await self.http.post_json(self.osv_url, body)
        # OSV answers ``{}`` when nothing is recorded.
        vulns = data.get("vulns") if isinstance(data, dict) else None
        ids = _advisory_ids(vulns if isinstance(vulns, list) else [])
        logger.debug("OSV: %d advisories for %s@%s", len(ids), name, version)
        return VulnerabilityReport(
            name=name,
            version=version,
            source="osv",
            ids=ids,
            malicious=any(i.startswith(OSV_MALICIOUS_PREFIX) for i in ids),
        )


def _advisory_ids(vulns: list[Any]) -> tuple[str, ...]:
    ids = []
    for vuln in vulns:
        if isinstance(vuln, dict):
            ids.append(str(vuln.get("id") or vuln.get("title") or "unknown"))
        else:
            ids.append(str(vuln))
    return tuple(ids)
