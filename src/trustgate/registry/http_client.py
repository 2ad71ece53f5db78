"""Shared async HTTP client for registry and API lookups.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error handling. Every outbound request
goes through the audit's ``Throttle`` so that concurrency and pacing limits
apply uniformly to registry, downloads, GitHub and vulnerability-database
calls.

Raises ``NotFoundError`` for HTTP 404 and ``NetworkError`` (both subclasses
of ``RegistryError``) for any other unrecoverable HTTP failure.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from trustgate.exceptions import NetworkError, NotFoundError
from trustgate.throttle import Throttle

logger = logging.getLogger(__name__)

# Timeout for all outbound HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = "trustgate-registry-client/0.1"


class HttpClient:
    """Throttled JSON-over-HTTP client.

    Args:
        throttle: Scheduler every request is dispatched through.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        throttle: Throttle | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.throttle = throttle or Throttle()
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying connection pool, if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any = None,  # noqa: ANN401
    ) -> httpx.Response:
        client = self._get_client()
        logger.debug("%s %s", method, url)
        try:
            return await self.throttle.throttle(
                lambda: client.request(method, url, headers=headers, json=json)
            )
        except httpx.TimeoutException as exc:
            logger.warning("Timeout fetching %s", url)
            raise NetworkError(f"Timeout fetching {url}", url=url) from exc
        except httpx.RequestError as exc:
            logger.warning("Request error for %s: %s", url, exc)
            raise NetworkError(f"Request error for {url}: {exc}", url=url) from exc

    async def get(self, url: str, *, headers: dict[str, str] | None = None) -> httpx.Response:
        """Issue a throttled GET and return the response without status checks.

        Raises:
            NetworkError: On timeouts or transport errors.
        """
        return await self._send("GET", url, headers=headers)

    async def post(
        self,
        url: str,
        *,
        json: Any,  # noqa: ANN401
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Issue a throttled POST with a JSON body, without status checks.

        Raises:
            NetworkError: On timeouts or transport errors.
        """
        return await self._send("POST", url, headers=headers, json=json)

    async def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> Any:  # noqa: ANN401
        """Fetch a URL and parse the response as JSON.

        Returns:
            Parsed JSON response (dict or list).

        Raises:
            NotFoundError: On HTTP 404.
            NetworkError: On other HTTP errors, timeouts, or invalid JSON.
        """
        resp = await self.get(url, headers=_json_headers(headers))
        return _parse_json(resp, url)

    async def post_json(
        self,
        url: str,
        body: Any,  # noqa: ANN401
        *,
        headers: dict[str, str] | None = None,
    ) -> Any:  # noqa: ANN401
        """POST ``body`` as JSON and parse the JSON response.

        Raises:
            NotFoundError: On HTTP 404.
            NetworkError: On other HTTP errors, timeouts, or invalid JSON.
        """
        resp = await self.post(url, json=body, headers=_json_headers(headers))
        return _parse_json(resp, url)


def _json_headers(headers: dict[str, str] | None) -> dict[str, str]:
    request_headers = {"Accept": "application/json"}
    if headers:
        request_headers.update(headers)
    return request_headers


def _parse_json(resp: httpx.Response, url: str) -> Any:  # noqa: ANN401
    if resp.status_code == 404:
        raise NotFoundError(f"Not found: {url}")
    if resp.is_error:
        logger.warning("HTTP %d from %s", resp.status_code, url)
        raise NetworkError(
            f"HTTP {resp.status_code} from {url}",
            url=url,
            status_code=resp.status_code,
        )
    try:
        return resp.json()
    except ValueError as exc:
        raise NetworkError(f"Invalid JSON from {url}", url=url) from exc
