"""Service status and readiness routes."""

from fastapi import APIRouter, Depends

from config import settings
from services.forwarder import CacheForwarder, get_forwarder

router = APIRouter()

SERVICE_NAME = "yahoo-finance-proxy"


@router.get("/")
async def index() -> dict:
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "fresh_ttl_ms": settings.fresh_ttl_ms,
        "stale_ttl_ms": settings.stale_ttl_ms,
        "commit": settings.git_sha,
    }


@router.get("/ready")
async def ready(forwarder: CacheForwarder = Depends(get_forwarder)) -> dict:
    """Lightweight readiness check — no upstream calls."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "commit": settings.git_sha,
        "cached_entries": forwarder.entry_count,
        "in_flight": forwarder.in_flight_count,
    }
