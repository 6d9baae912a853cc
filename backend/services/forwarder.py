"""Cache-and-forward coordinator.

For each upstream URL decides between a fresh cache hit, waiting on a fetch
that is already running, starting a new fetch, or serving a stale copy when
the upstream is throttling or down.

Single-flight: at most one fetch per key. The fetch runs in its own
asyncio.Task so it completes (and is stored) even if the request that
started it goes away; every caller awaits it through asyncio.shield.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable

from config import Settings, settings
from errors import GatewayError, UpstreamError
from services.cache import CacheEntry, EntryState, ResponseCache, entry_state
from services.upstream import UpstreamFetcher

logger = logging.getLogger(__name__)


class CacheDisposition(str, enum.Enum):
    HIT = "HIT"
    HIT_AFTER_WAIT = "HIT-AFTER-WAIT"
    MISS = "MISS"
    STALE = "STALE"


@dataclass(frozen=True)
class Resolution:
    entry: CacheEntry
    disposition: CacheDisposition
    upstream_error: UpstreamError | None = None

    @property
    def status(self) -> int:
        return self.entry.status

    @property
    def content_type(self) -> str:
        return self.entry.content_type

    @property
    def body(self) -> str:
        return self.entry.body


class CacheForwarder:
    def __init__(
        self,
        fetcher: UpstreamFetcher,
        fresh_ttl: float,
        stale_ttl: float,
        clock: Callable[[], float] = time.time,
    ):
        self._fetcher = fetcher
        self._cache = ResponseCache(fresh_ttl, stale_ttl, clock=clock)
        self._clock = clock
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def fresh_ttl(self) -> float:
        return self._cache.fresh_ttl

    @property
    def stale_ttl(self) -> float:
        return self._cache.stale_ttl

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def entry_count(self) -> int:
        return len(self._cache)

    def now(self) -> float:
        return self._clock()

    def peek(self, key: str) -> CacheEntry | None:
        return self._cache.get(key)

    def clear(self) -> None:
        """Drop cached entries. Running fetches are left alone."""
        self._cache.clear()

    async def resolve(self, key: str) -> Resolution:
        """Answer `key` from cache or upstream. Raises GatewayError when nothing is servable."""
        previous = self._cache.get(key)
        if previous is not None and entry_state(previous, self._clock()) is EntryState.FRESH:
            return Resolution(previous, CacheDisposition.HIT)

        # Lookup and registration below must not be separated by an await.
        task = self._in_flight.get(key)
        if task is not None:
            disposition = CacheDisposition.HIT_AFTER_WAIT
        else:
            task = asyncio.create_task(self._fetch_and_store(key))
            self._in_flight[key] = task
            task.add_done_callback(_consume_exception)
            disposition = CacheDisposition.MISS

        try:
            entry = await asyncio.shield(task)
        except UpstreamError as e:
            return self._fall_back(key, previous, e)
        return Resolution(entry, disposition)

    async def _fetch_and_store(self, key: str) -> CacheEntry:
        try:
            resp = await self._fetcher.fetch(key)
            return self._cache.set(key, resp.status, resp.content_type, resp.body)
        finally:
            self._in_flight.pop(key, None)

    def _fall_back(self, key: str, previous: CacheEntry | None, error: UpstreamError) -> Resolution:
        if (
            error.is_transient
            and previous is not None
            and entry_state(previous, self._clock()) is not EntryState.EXPIRED
        ):
            logger.warning("Serving stale %s after upstream failure: %s", key, error)
            return Resolution(previous, CacheDisposition.STALE, upstream_error=error)

        logger.error("No usable cache for %s after upstream failure: %s", key, error)
        raise GatewayError(str(error), upstream_status=error.status) from error


def _consume_exception(task: asyncio.Task) -> None:
    # Every caller may have been cancelled; don't let the loop warn about it.
    if not task.cancelled():
        task.exception()


def build_forwarder(settings: Settings) -> CacheForwarder:
    fetcher = UpstreamFetcher(
        max_attempts=settings.upstream_retries,
        timeout=settings.upstream_timeout_seconds,
    )
    return CacheForwarder(fetcher, settings.fresh_ttl_seconds, settings.stale_ttl_seconds)


forwarder = build_forwarder(settings)


def get_forwarder() -> CacheForwarder:
    """FastAPI dependency for the process-wide forwarder."""
    return forwarder
