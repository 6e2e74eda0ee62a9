"""Async HTTP fetcher.

Responsible solely for retrieving a page: final status after redirects plus
the raw body.  Non-2xx responses are results, not errors; only transport
failures raise.

Uses httpx.AsyncClient which is meant to be long-lived and reused.  The API
layer shares one module-level client (``get_http_client`` /
``close_http_client``); standalone callers build their own with
``build_http_client``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ogpinfo.core.config import Settings, settings
from ogpinfo.models.ogp.response import FetchResponse

logger = logging.getLogger(__name__)

# Module-level shared client
_http_client: Optional[httpx.AsyncClient] = None


def build_http_client(config: Settings) -> httpx.AsyncClient:
    """Create an AsyncClient configured from *config*."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout),
        follow_redirects=True,
        max_redirects=config.http_max_redirects,
        verify=config.http_verify_ssl,
        headers={"User-Agent": config.user_agent},
    )


def get_http_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient.  Creates one if missing."""
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = build_http_client(settings)
    return _http_client


async def close_http_client() -> None:
    """Close the shared AsyncClient gracefully."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed.")


class FetchError(Exception):
    """Raised when the page could not be fetched at all (no HTTP response)."""


async def fetch_page(
    client: httpx.AsyncClient, url: str, *, max_retries: int = 0
) -> FetchResponse:
    """Fetch *url* and return its final status and body.

    Retries on transient errors (timeouts, connection failures) using
    exponential backoff via tenacity, up to *max_retries* extra attempts.
    Raises :class:`FetchError` on permanent transport failures or when all
    retries are exhausted.
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=False,
    )
    try:
        return await retrying(_do_fetch, client, url)
    except RetryError as exc:
        raise FetchError(
            f"Failed to fetch {url} after {max_retries + 1} attempts: "
            f"{exc.last_attempt.exception()}"
        ) from exc


async def _do_fetch(client: httpx.AsyncClient, url: str) -> FetchResponse:
    """Perform a single HTTP GET and map the response to a FetchResponse.

    Redirects are followed here rather than by httpx, up to
    ``client.max_redirects`` hops.  When the limit is hit, the last redirect
    response is returned, so its 3xx status is what gets recorded.
    """
    try:
        response = await client.send(
            client.build_request("GET", url), follow_redirects=False
        )
        hops = 0
        while response.next_request is not None and hops < client.max_redirects:
            response = await client.send(response.next_request, follow_redirects=False)
            hops += 1
    except httpx.InvalidURL as exc:
        raise FetchError(f"Invalid URL '{url}': {exc}") from exc
    except httpx.TimeoutException:
        raise  # propagate for retry logic
    except httpx.ConnectError:
        raise  # propagate for retry logic
    except httpx.RequestError as exc:
        # UnsupportedProtocol, read errors, ...
        raise FetchError(f"Request error for '{url}': {exc}") from exc

    if response.next_request is not None:
        logger.info("Gave up on %s after %d redirects", url, hops)

    return FetchResponse(
        url=url,
        final_url=str(response.url),
        status=response.status_code,
        body=response.content,
        encoding=response.charset_encoding,
    )
