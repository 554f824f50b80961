"""
Unit Tests - Configuration
"""
import pytest
from pydantic import ValidationError

from dashboard_analytics.config.settings import AnalyticsSettings, DatabaseSettings, RedisSettings


class TestSettings:
    """Tests for application settings"""

    def test_defaults(self, test_settings, monkeypatch):
        """Snapshots live ten minutes in process memory by default"""
        monkeypatch.delenv("ANALYTICS_CACHE_TTL_SECONDS", raising=False)
        monkeypatch.delenv("ANALYTICS_CACHE_BACKEND", raising=False)

        analytics = AnalyticsSettings()

        assert test_settings.app_env == "testing"
        assert analytics.cache_ttl_seconds == 600
        assert analytics.cache_backend == "memory"
        assert analytics.cache_key == "dashboardAnalytics"

    def test_backend_is_validated(self):
        """Unknown snapshot stores are rejected"""
        with pytest.raises(ValidationError):
            AnalyticsSettings(cache_backend="memcached")

    def test_backend_is_case_insensitive(self):
        assert AnalyticsSettings(cache_backend="Redis").cache_backend == "redis"

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(cache_ttl_seconds=0)

    def test_database_url_override(self):
        """An explicit URL wins over the POSTGRES_* parts"""
        settings = DatabaseSettings(url="sqlite+aiosqlite:///./analytics.db")

        assert settings.async_url == "sqlite+aiosqlite:///./analytics.db"

    def test_database_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = DatabaseSettings(host="db", port=5433, db="shop", user="app", password="pw")

        assert settings.async_url == "postgresql+asyncpg://app:pw@db:5433/shop"

    def test_redis_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        settings = RedisSettings(host="cache", port=6380, db=2, password="pw")

        assert settings.get_url() == "redis://:pw@cache:6380/2"

    def test_cors_origin_follows_frontend_url(self, test_settings):
        assert test_settings.security.cors_origins == [test_settings.security.frontend_url]
