"""Yahoo Finance proxy routes.

/yahoo/quote?symbols=AAPL,MSFT      → /v7/finance/quote?symbols=AAPL,MSFT
/yahoo/options/AAPL?date=1734048000 → /v7/finance/options/AAPL?date=1734048000

The query string is forwarded verbatim and the resulting URL is the cache key.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response

from config import settings
from services.forwarder import CacheDisposition, CacheForwarder, Resolution, get_forwarder

router = APIRouter(prefix="/yahoo")


def quote_url(query_string: str, base_url: str | None = None) -> str:
    base_url = base_url or settings.upstream_base_url
    return f"{base_url}/v7/finance/quote?{query_string}"


def options_url(symbol: str, query_string: str, base_url: str | None = None) -> str:
    base_url = base_url or settings.upstream_base_url
    url = f"{base_url}/v7/finance/options/{quote(symbol, safe='')}"
    return f"{url}?{query_string}" if query_string else url


def build_response(resolution: Resolution, now: float) -> Response:
    """Turn a resolution into the proxied response with cache metadata."""
    entry = resolution.entry
    headers = {
        "X-Cache": resolution.disposition.value,
        "Cache-Control": (
            f"public, max-age={entry.fresh_seconds_left(now)}, "
            f"stale-if-error={entry.stale_seconds_left(now)}"
        ),
    }
    if resolution.disposition is CacheDisposition.STALE:
        error = resolution.upstream_error
        status = error.status if error is not None else None
        headers["X-Upstream-Status"] = str(status) if status is not None else "unknown"
        headers["Warning"] = '110 - "Response is Stale"'

    return Response(
        content=resolution.body,
        status_code=resolution.status,
        headers=headers,
        media_type=resolution.content_type,
    )


async def _forward(forwarder: CacheForwarder, upstream: str) -> Response:
    resolution = await forwarder.resolve(upstream)
    return build_response(resolution, forwarder.now())


@router.get("/quote")
async def yahoo_quote(request: Request, forwarder: CacheForwarder = Depends(get_forwarder)) -> Response:
    """Quotes for one or more symbols."""
    return await _forward(forwarder, quote_url(request.url.query))


@router.get("/options/{symbol}")
async def yahoo_options(
    symbol: str,
    request: Request,
    forwarder: CacheForwarder = Depends(get_forwarder),
) -> Response:
    """Option chain for a symbol, optionally for one expiry (`date`)."""
    return await _forward(forwarder, options_url(symbol, request.url.query))
