"""FastAPI application entry point for the Yahoo Finance proxy."""

import logging
import sys
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from errors import register_error_handlers

# Structured logging: JSON for production, human-readable for local
if settings.is_production:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("access")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    for problem in settings.validate():
        logger.warning("Config: %s", problem)
    logger.info(
        "Proxy ready (fresh=%dms, stale=%dms, retries=%d)",
        settings.fresh_ttl_ms,
        settings.stale_ttl_ms,
        settings.upstream_retries,
    )
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Yahoo Finance Proxy", version="1.0.0", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    # Access log + security headers
    @app.middleware("http")
    async def log_request(request: Request, call_next):
        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        access_logger.info(
            "%s %s %d %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.health import router as health_router
    from routes.yahoo import router as yahoo_router

    app.include_router(health_router)
    app.include_router(yahoo_router)

    return app


app = create_app()


def main() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
