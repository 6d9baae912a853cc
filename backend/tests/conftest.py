"""Shared fixtures: controllable clock, recording sleep, scripted upstream."""

import asyncio

import httpx
import pytest

from errors import UpstreamError
from services.forwarder import CacheForwarder
from services.upstream import UpstreamResponse


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedFetcher:
    """Stands in for UpstreamFetcher; each fetch pops the next outcome.

    An outcome is an UpstreamResponse or an UpstreamError. When `gate` is
    set, fetches block until it is released.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, url: str) -> UpstreamResponse:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, UpstreamError):
            raise outcome
        return outcome


def ok(body: str = '{"ok":true}', status: int = 200) -> UpstreamResponse:
    return UpstreamResponse(status=status, content_type="application/json", body=body)


def failed(status: int | None) -> UpstreamError:
    return UpstreamError(f"Upstream {status}", status=status)


def scripted_transport(*responses: httpx.Response | Exception):
    """httpx transport replaying `responses` in order and recording requests."""
    queue = list(responses)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler), seen


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_forwarder(clock):
    def _make(fetcher, fresh_ttl: float = 1.0, stale_ttl: float = 5.0) -> CacheForwarder:
        return CacheForwarder(fetcher, fresh_ttl, stale_ttl, clock=clock)

    return _make
