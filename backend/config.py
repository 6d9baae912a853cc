"""Centralized configuration — all env vars in one place."""

import os

DEFAULT_FRESH_TTL_MS = 30_000
DEFAULT_STALE_TTL_MS = 15 * 60 * 1000
DEFAULT_UPSTREAM_RETRIES = 3
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 10.0


def _env_int(names: tuple[str, ...], default: int, problems: list[str]) -> int:
    """First set env var among `names` as int; records a problem on bad input."""
    for name in names:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            continue
        try:
            return int(raw)
        except ValueError:
            problems.append(f"{name}={raw!r} is not an integer, using {default}")
            return default
    return default


def _env_float(name: str, default: float, problems: list[str]) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        problems.append(f"{name}={raw!r} is not a number, using {default}")
        return default


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self._problems: list[str] = []

        origins = os.getenv("ALLOWED_ORIGINS") or os.getenv("CORS_ORIGINS", "*")
        self.cors_origins: list[str] = [o.strip() for o in origins.split(",") if o.strip()] or ["*"]
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")
        self.port: int = _env_int(("PORT",), 10000, self._problems)

        # Upstream
        self.upstream_base_url: str = os.getenv(
            "UPSTREAM_BASE_URL", "https://query2.finance.yahoo.com"
        ).rstrip("/")
        self.upstream_timeout_seconds: float = _env_float(
            "UPSTREAM_TIMEOUT_SECONDS", DEFAULT_UPSTREAM_TIMEOUT_SECONDS, self._problems
        )
        retries = _env_int(("UPSTREAM_RETRIES",), DEFAULT_UPSTREAM_RETRIES, self._problems)
        if retries < 1:
            self._problems.append(f"UPSTREAM_RETRIES={retries} must be at least 1, using 1")
            retries = 1
        self.upstream_retries: int = retries

        # Cache windows (CACHE_TTL_MS is the older name for the fresh window)
        fresh = _env_int(("FRESH_TTL_MS", "CACHE_TTL_MS"), DEFAULT_FRESH_TTL_MS, self._problems)
        if fresh < 0:
            self._problems.append(f"FRESH_TTL_MS={fresh} is negative, using 0")
            fresh = 0
        stale = _env_int(("STALE_TTL_MS",), DEFAULT_STALE_TTL_MS, self._problems)
        if stale < fresh:
            self._problems.append(
                f"STALE_TTL_MS={stale} is shorter than FRESH_TTL_MS={fresh}, using {fresh}"
            )
            stale = fresh
        self.fresh_ttl_ms: int = fresh
        self.stale_ttl_ms: int = stale

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def fresh_ttl_seconds(self) -> float:
        return self.fresh_ttl_ms / 1000

    @property
    def stale_ttl_seconds(self) -> float:
        return self.stale_ttl_ms / 1000

    def validate(self) -> list[str]:
        """Return the configuration problems found while reading the environment."""
        return list(self._problems)


settings = Settings()
