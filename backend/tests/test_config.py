"""Tests for environment-driven settings."""

import pytest

from config import DEFAULT_FRESH_TTL_MS, DEFAULT_STALE_TTL_MS, Settings

ENV_VARS = [
    "ALLOWED_ORIGINS",
    "CORS_ORIGINS",
    "FRESH_TTL_MS",
    "CACHE_TTL_MS",
    "STALE_TTL_MS",
    "UPSTREAM_RETRIES",
    "UPSTREAM_TIMEOUT_SECONDS",
    "UPSTREAM_BASE_URL",
    "PORT",
    "ENVIRONMENT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        s = Settings()

        assert s.fresh_ttl_ms == DEFAULT_FRESH_TTL_MS
        assert s.stale_ttl_ms == DEFAULT_STALE_TTL_MS
        assert s.upstream_retries == 3
        assert s.upstream_base_url == "https://query2.finance.yahoo.com"
        assert s.cors_origins == ["*"]
        assert s.port == 10000
        assert not s.is_production
        assert s.validate() == []

    def test_ttls_in_seconds(self, monkeypatch):
        monkeypatch.setenv("FRESH_TTL_MS", "60000")
        monkeypatch.setenv("STALE_TTL_MS", "120000")

        s = Settings()

        assert s.fresh_ttl_seconds == 60.0
        assert s.stale_ttl_seconds == 120.0

    def test_legacy_cache_ttl_name(self, monkeypatch):
        monkeypatch.setenv("CACHE_TTL_MS", "45000")

        assert Settings().fresh_ttl_ms == 45000

    def test_fresh_ttl_name_wins(self, monkeypatch):
        monkeypatch.setenv("CACHE_TTL_MS", "45000")
        monkeypatch.setenv("FRESH_TTL_MS", "5000")

        assert Settings().fresh_ttl_ms == 5000

    def test_stale_clamped_to_fresh(self, monkeypatch):
        monkeypatch.setenv("FRESH_TTL_MS", "60000")
        monkeypatch.setenv("STALE_TTL_MS", "1000")

        s = Settings()

        assert s.stale_ttl_ms == 60000
        assert any("STALE_TTL_MS" in p for p in s.validate())

    def test_bad_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("UPSTREAM_RETRIES", "lots")
        monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "x")

        s = Settings()

        assert s.upstream_retries == 3
        assert s.upstream_timeout_seconds == 10.0
        assert len(s.validate()) == 2

    def test_retries_at_least_one(self, monkeypatch):
        monkeypatch.setenv("UPSTREAM_RETRIES", "0")

        assert Settings().upstream_retries == 1

    def test_origins_list(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")

        assert Settings().cors_origins == ["https://a.example", "https://b.example"]

    def test_base_url_trailing_slash(self, monkeypatch):
        monkeypatch.setenv("UPSTREAM_BASE_URL", "http://localhost:9000/")

        assert Settings().upstream_base_url == "http://localhost:9000"
