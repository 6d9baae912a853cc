"""Upstream HTTP client with bounded retry for throttling and transient errors.

Sends browser-like headers; Yahoo answers bare clients with 401s in many
environments. 429 and 5xx are retried with backoff (honoring Retry-After),
other 4xx fail straight away.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable

import httpx

from errors import UpstreamError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://finance.yahoo.com/",
    "Origin": "https://finance.yahoo.com",
    "Connection": "keep-alive",
}

DEFAULT_CONTENT_TYPE = "application/json"
BASE_BACKOFF_SECONDS = 0.5
MAX_BACKOFF_SECONDS = 10.0
SNIPPET_LENGTH = 200


@dataclass(frozen=True)
class UpstreamResponse:
    status: int
    content_type: str
    body: str


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def compute_backoff(attempt: int, retry_after: float | None = None) -> float:
    """Delay before the next attempt; `attempt` is zero-based.

    0.5s, 1s, 2s... without a hint. Always capped at 10s.
    """
    if retry_after is not None:
        return min(MAX_BACKOFF_SECONDS, max(0.0, retry_after))
    return min(MAX_BACKOFF_SECONDS, BASE_BACKOFF_SECONDS * (2 ** attempt))


class UpstreamFetcher:
    """Performs one logical GET against the upstream, retrying transient failures."""

    def __init__(
        self,
        max_attempts: int = 3,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max(1, max_attempts)
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    async def fetch(self, url: str) -> UpstreamResponse:
        """GET `url`. Raises UpstreamError once retries are spent or on a client error."""
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=BROWSER_HEADERS,
            transport=self._transport,
        ) as client:
            return await self._fetch_with_retry(client, url)

    async def _fetch_with_retry(self, client: httpx.AsyncClient, url: str) -> UpstreamResponse:
        last_error: UpstreamError | None = None

        for attempt in range(self.max_attempts):
            retry_after = None
            try:
                resp = await client.get(url)
            except httpx.HTTPError as e:
                last_error = UpstreamError(f"Upstream request failed for {url}: {e}")
            else:
                if resp.is_success:
                    return UpstreamResponse(
                        status=resp.status_code,
                        content_type=resp.headers.get("content-type", DEFAULT_CONTENT_TYPE),
                        body=resp.text,
                    )

                if not is_retryable_status(resp.status_code):
                    snippet = resp.text[:SNIPPET_LENGTH]
                    logger.warning("Upstream %s for %s (not retried)", resp.status_code, url)
                    raise UpstreamError(
                        f"Upstream error {resp.status_code} for {url}: {snippet}",
                        status=resp.status_code,
                    )

                retry_after = parse_retry_after(resp.headers.get("retry-after"))
                last_error = UpstreamError(
                    f"Upstream {resp.status_code} for {url}", status=resp.status_code
                )

            if attempt == self.max_attempts - 1:
                break

            delay = compute_backoff(attempt, retry_after)
            logger.warning(
                "Upstream attempt %d/%d failed (%s), retrying in %.2fs",
                attempt + 1,
                self.max_attempts,
                last_error.status or "no status",
                delay,
            )
            await self._sleep(delay)

        raise last_error or UpstreamError(f"Upstream fetch failed for {url}")
