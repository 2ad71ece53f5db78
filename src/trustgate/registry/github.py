"""GitHub repository lookups used by the deprecation check.

Extracts ``owner/repo`` from the repository URLs found in package metadata
and asks the GitHub REST API whether the repository has been archived.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from trustgate.exceptions import NetworkError
from trustgate.registry.http_client import HttpClient

logger = logging.getLogger(__name__)

GITHUB_API_URL: str = "https://api.github.com"

# git+https://github.com/o/r.git, https://github.com/o/r, git://github.com/o/r.git,
# git@github.com:o/r.git
_GITHUB_REPO_RE = re.compile(r"github\.com[/:]([\w.-]+)/([\w.-]+?)(?:\.git)?/?$", re.I)


@dataclass(frozen=True)
class GitHubRepo:
    owner: str
    repo: str


def extract_github_repo(repo_url: str | None) -> GitHubRepo | None:
    """Return the GitHub owner and repo named by ``repo_url``, if any."""
    if not repo_url or not isinstance(repo_url, str):
        return None
    m = _GITHUB_REPO_RE.search(repo_url.strip())
    if not m:
        return None
    return GitHubRepo(owner=m.group(1), repo=m.group(2))


class GitHubClient:
    """Minimal GitHub REST client.

    Args:
        http: Throttled HTTP client.
        api_url: GitHub API base URL.
        token: Optional token for higher rate limits.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        api_url: str = GITHUB_API_URL,
        token: str | None = None,
    ) -> None:
        self.http = http
        self.api_url = api_url.rstrip("/")
        self.token = token

    async def is_archived(self, owner: str, repo: str) -> bool:
        """Return True if ``owner/repo`` is archived on GitHub.

        A missing or private repository (404) counts as not archived.

        Raises:
            NetworkError: On rate limiting, forbidden access, or other errors.
        """
        headers = {
            "Accept": "application/vnd.github.v3+json",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"

        url = f"{self.api_url}/repos/{owner}/{repo}"
        resp = await self.http.get(url, headers=headers)

        if resp.status_code == 403:
            if resp.headers.get("x-ratelimit-remaining") == "0":
                raise NetworkError(
                    "GitHub API rate limit exceeded - could not evaluate repository "
                    "archive status. Set GITHUB_TOKEN environment variable for higher "
                    "rate limits.",
                    url=url,
                    status_code=403,
                )
            raise NetworkError(
                f"GitHub API access forbidden for {owner}/{repo} - could not evaluate "
                "repository archive status",
                url=url,
                status_code=403,
            )
        if resp.status_code == 404:
            logger.debug("GitHub repo %s/%s not found", owner, repo)
            return False
        if resp.is_error:
            raise NetworkError(
                f"GitHub API error ({resp.status_code}) - could not evaluate repository "
                "archive status",
                url=url,
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise NetworkError(f"Invalid JSON from {url}", url=url) from exc
        return isinstance(data, dict) and data.get("archived") is True
