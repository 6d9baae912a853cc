"""In-memory response cache with a fresh window and a longer stale window.

No Redis: each uvicorn worker has its own table, so with --workers 2 a key
may be fetched once per worker. Entries are never purged; they simply stop
being servable once their windows have passed.
"""

import enum
import time
from dataclasses import dataclass
from typing import Callable


class EntryState(str, enum.Enum):
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CacheEntry:
    status: int
    content_type: str
    body: str
    stored_at: float
    fresh_until: float
    stale_until: float

    @classmethod
    def create(
        cls,
        status: int,
        content_type: str,
        body: str,
        stored_at: float,
        fresh_ttl: float,
        stale_ttl: float,
    ) -> "CacheEntry":
        return cls(
            status=status,
            content_type=content_type,
            body=body,
            stored_at=stored_at,
            fresh_until=stored_at + fresh_ttl,
            stale_until=stored_at + max(stale_ttl, fresh_ttl),
        )

    def fresh_seconds_left(self, now: float) -> int:
        return max(0, int(self.fresh_until - now))

    def stale_seconds_left(self, now: float) -> int:
        return max(0, int(self.stale_until - now))


def entry_state(entry: CacheEntry, now: float) -> EntryState:
    """Where `entry` sits at `now`. Both window ends are inclusive."""
    if now <= entry.fresh_until:
        return EntryState.FRESH
    if now <= entry.stale_until:
        return EntryState.STALE
    return EntryState.EXPIRED


class ResponseCache:
    def __init__(self, fresh_ttl: float, stale_ttl: float, clock: Callable[[], float] = time.time):
        self.fresh_ttl = fresh_ttl
        self.stale_ttl = max(stale_ttl, fresh_ttl)
        self.clock = clock
        self._store: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        return self._store.get(key)

    def set(self, key: str, status: int, content_type: str, body: str) -> CacheEntry:
        entry = CacheEntry.create(
            status, content_type, body, self.clock(), self.fresh_ttl, self.stale_ttl
        )
        self._store[key] = entry
        return entry

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
