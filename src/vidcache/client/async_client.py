"""Asynchronous YouTube Data API client with retry and error mapping.

This module provides :class:`AsyncClient`, a thin wrapper around
:class:`httpx.AsyncClient` that injects the API key, retries transient
failures with exponential backoff, honours ``Retry-After`` on HTTP 429,
and maps error responses to the :mod:`vidcache.exceptions` hierarchy.

Retry policy:

* HTTP 429 -- wait for the advertised ``Retry-After`` seconds, or
  ``backoff * 2**attempt`` when the header is missing.
* HTTP 5xx and network errors -- wait ``backoff * 2**attempt``.
* Any other 4xx -- not retried.

Rate limiting and generic failures share one attempt counter
(``CacheSettings.max_attempts``); once it is used up the last error is
raised.

See Also:
    :class:`~vidcache.client.fetcher.VideoFetcher` -- the paginating
    fetcher built on top of this client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from vidcache.exceptions import (
    AuthError,
    ConnectionError_,
    MissingCredentialError,
    NotFoundError,
    RateLimitError,
    ServerError,
    SourceError,
    VidcacheError,
)
from vidcache.models import CacheSettings
from vidcache.output import get_output

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"


class AsyncClient:
    """Asynchronous client for the YouTube Data API v3.

    Must be used as an async context manager. Entering the context without
    an API key raises :class:`~vidcache.exceptions.MissingCredentialError`,
    so the key is only required once a request is actually about to be
    made.

    Args:
        api_key: YouTube Data API key, sent as the ``key`` query parameter.
        settings: Supplies ``max_attempts``, ``backoff_seconds`` and
            ``request_timeout``.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.
        base_url: API root.

    Example::

        async with AsyncClient(api_key, CacheSettings()) as client:
            page = await client.get_json("/playlistItems", {"playlistId": "PL..."})
    """

    def __init__(
        self,
        api_key: Optional[str],
        settings: Optional[CacheSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = YOUTUBE_API_BASE,
    ) -> None:
        self._api_key = api_key
        self._settings = settings or CacheSettings()
        self._transport = transport
        self._base_url = base_url
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        if not self._api_key:
            raise MissingCredentialError(
                "A YouTube API key is required to fetch data (set YOUTUBE_API_KEY)"
            )
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._settings.request_timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """GET *path* with retry and return the decoded JSON body.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            SourceError: On any other 4xx, or a body that is not a JSON object.
            RateLimitError: When 429 persists through every attempt.
            ServerError: When 5xx persists through every attempt.
            ConnectionError_: When network errors persist through every attempt.
        """
        response = await self.with_retry(path, params or {})
        try:
            data = response.json()
        except ValueError as exc:
            raise SourceError(f"Invalid JSON from {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SourceError(f"Unexpected response shape from {path}")
        return data

    async def with_retry(self, path: str, params: dict[str, Any]) -> httpx.Response:
        """Execute a GET with the shared retry budget.

        Returns the first 2xx/3xx response. Non-retryable 4xx answers are
        raised immediately; retryable failures are raised once all
        ``max_attempts`` are spent.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        max_attempts = max(1, self._settings.max_attempts)
        backoff = self._settings.backoff_seconds
        output = get_output()
        query = {**params, "key": self._api_key}
        last_error: Optional[VidcacheError] = None

        for attempt in range(max_attempts):
            delay = backoff * (2 ** attempt)
            try:
                response = await self._client.get(path, params=query)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                last_error = ConnectionError_(
                    f"Connection failed after {attempt + 1} attempt(s): {exc}"
                )
                reason = f"Connection error: {exc}"
            else:
                status = response.status_code
                if status == 429:
                    retry_after = _retry_after(response)
                    if retry_after is not None:
                        delay = retry_after
                    last_error = RateLimitError(
                        f"Rate limited by the YouTube API on {path}", retry_after=retry_after
                    )
                    reason = "Rate limited"
                elif status >= 500:
                    last_error = ServerError(f"HTTP {status}: {_error_message(response)}")
                    reason = f"Server error {status}"
                elif status >= 400:
                    raise _map_client_error(response)
                else:
                    return response

            if attempt < max_attempts - 1:
                output.warning(
                    f"{reason}, retrying in {delay:g}s (attempt {attempt + 1}/{max_attempts})"
                )
                await asyncio.sleep(delay)

        assert last_error is not None
        raise last_error


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds advertised by ``Retry-After``; ``None`` if absent or not numeric."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of a Google API error body."""
    try:
        detail = response.json()
    except ValueError:
        return response.text[:200] if response.text else ""
    if isinstance(detail, dict):
        err = detail.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or "")
        if err:
            return str(err)
        return str(detail.get("message") or "")
    return str(detail)


def _map_client_error(response: httpx.Response) -> VidcacheError:
    status = response.status_code
    msg = _error_message(response)
    full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"
    if status in (401, 403):
        return AuthError(full_msg)
    if status == 404:
        return NotFoundError(full_msg)
    return SourceError(full_msg)
