"""Timeout-bounded, retrying, multi-endpoint HTTP access.

Layers, innermost first:
    fetch_with_timeout       one GET, body read inside the timeout window
    fetch_with_retry         linear backoff, non-2xx counts as a failure
    fetch_json_with_fallback walk an ordered endpoint list, parse JSON
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import aiohttp
import orjson

from orion_store.constants import (
    DEFAULT_BACKOFF_MS,
    DEFAULT_RETRIES,
    NETWORK_TIMEOUT_MS,
)
from orion_store.exceptions import (
    DataMalformedError,
    FetchError,
    FetchStatusError,
    FetchTimeoutError,
)
from orion_store.logger import get_logger

logger = get_logger(__name__)

HeaderProvider = Callable[[str], dict[str, str]]


@dataclass(frozen=True)
class FetchResponse:
    url: str
    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Parse the body as JSON.

        Raises:
            DataMalformedError: If the body is not valid JSON

        """
        try:
            return orjson.loads(self.body)
        except orjson.JSONDecodeError as e:
            raise DataMalformedError(str(e), self.url) from e


@dataclass(frozen=True)
class Endpoint:
    url: str
    retries: int = DEFAULT_RETRIES


def cache_bust(url: str, now_ms: int | None = None) -> str:
    """Append a ``t=<epoch ms>`` query parameter to defeat CDN caches."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}t={stamp}"


@asynccontextmanager
async def create_http_session(
    timeout_seconds: float = NETWORK_TIMEOUT_MS / 1000,
) -> AsyncIterator[aiohttp.ClientSession]:
    """Create a configured HTTP session.

    Args:
        timeout_seconds: Per-request ceiling; individual fetches pass their
            own tighter timeout

    Yields:
        aiohttp.ClientSession

    """
    timeout = aiohttp.ClientTimeout(
        total=timeout_seconds * 3, sock_connect=timeout_seconds
    )
    connector = aiohttp.TCPConnector(limit=10, limit_per_host=4)
    async with aiohttp.ClientSession(
        timeout=timeout, connector=connector
    ) as session:
        yield session


async def fetch_with_timeout(
    session: aiohttp.ClientSession,
    url: str,
    *,
    timeout_ms: int = NETWORK_TIMEOUT_MS,
    headers: dict[str, str] | None = None,
) -> FetchResponse:
    """Perform one GET bounded by ``timeout_ms``.

    The body is read inside the same timeout window, so a stalled body
    aborts just like a stalled connect.

    Args:
        session: HTTP session
        url: Target URL
        timeout_ms: Timeout in milliseconds
        headers: Optional request headers

    Returns:
        FetchResponse (any status; callers decide what counts as success)

    Raises:
        FetchTimeoutError: If the timeout elapses
        FetchError: On connection-level failures

    """
    timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
    try:
        async with session.get(
            url, headers=headers or {}, timeout=timeout
        ) as response:
            body = await response.read()
            return FetchResponse(url=url, status=response.status, body=body)
    except TimeoutError as e:
        msg = f"no response within {timeout_ms} ms"
        raise FetchTimeoutError(msg, url) from e
    except aiohttp.ClientError as e:
        raise FetchError(str(e) or e.__class__.__name__, url) from e


async def fetch_with_retry(
    session: aiohttp.ClientSession,
    url: str,
    *,
    retries: int = DEFAULT_RETRIES,
    backoff_ms: int = DEFAULT_BACKOFF_MS,
    timeout_ms: int = NETWORK_TIMEOUT_MS,
    headers: dict[str, str] | None = None,
) -> FetchResponse:
    """GET with up to ``retries`` attempts and linear backoff.

    After failed attempt ``n`` (1-based, not the last) the call sleeps
    ``backoff_ms * n``. A non-2xx response is a failed attempt.

    Raises:
        FetchError: The last attempt's failure (a FetchStatusError for a
            non-2xx response)

    """
    attempts = max(retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            response = await fetch_with_timeout(
                session, url, timeout_ms=timeout_ms, headers=headers
            )
            if not response.ok:
                msg = f"HTTP {response.status}"
                raise FetchStatusError(msg, url, status=response.status)
        except FetchError as e:
            logger.warning(
                "Attempt %s/%s failed for %s: %s", attempt, attempts, url, e
            )
            if attempt == attempts:
                raise
            await asyncio.sleep(backoff_ms * attempt / 1000)
        else:
            return response

    msg = "no attempts made"
    raise FetchError(msg, url)


async def fetch_json_with_fallback(
    session: aiohttp.ClientSession,
    endpoints: Sequence[Endpoint],
    *,
    backoff_ms: int = DEFAULT_BACKOFF_MS,
    timeout_ms: int = NETWORK_TIMEOUT_MS,
    headers_for: HeaderProvider | None = None,
    validate: Callable[[Any, str], None] | None = None,
) -> tuple[Any, str]:
    """Return the parsed JSON of the first endpoint that succeeds.

    A malformed or invalid payload moves on to the next endpoint just
    like a network failure.

    Args:
        session: HTTP session
        endpoints: Ordered endpoints with their retry counts
        backoff_ms: Backoff unit for each endpoint's retries
        timeout_ms: Per-attempt timeout
        headers_for: Builds request headers for a URL (e.g. auth)
        validate: Optional payload check raising DataMalformedError

    Returns:
        (payload, url) of the successful endpoint

    Raises:
        FetchError | DataMalformedError: The last endpoint's failure

    """
    last_error: Exception | None = None
    for endpoint in endpoints:
        headers = headers_for(endpoint.url) if headers_for else None
        try:
            response = await fetch_with_retry(
                session,
                endpoint.url,
                retries=endpoint.retries,
                backoff_ms=backoff_ms,
                timeout_ms=timeout_ms,
                headers=headers,
            )
            payload = response.json()
            if validate is not None:
                validate(payload, endpoint.url)
        except (FetchError, DataMalformedError) as e:
            logger.info("Endpoint %s unavailable, trying next: %s", endpoint.url, e)
            last_error = e
            continue
        return payload, endpoint.url

    if last_error is None:
        msg = "no endpoints configured"
        raise FetchError(msg)
    raise last_error
