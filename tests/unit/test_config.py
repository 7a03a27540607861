"""
Unit tests for Settings.
"""

import pytest
from pydantic import ValidationError

from tagcache.core.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.is_development
        assert settings.REDIS_URL == "redis://localhost:6379/0"
        assert settings.CACHE_DEFAULT_EXPIRY_MINUTES == 30
        assert settings.default_expiry_seconds == 1800
        assert settings.CACHE_TAG_PREFIX == "tag:"
        assert settings.CACHE_KEY_TAGS_PREFIX == "key_tags:"
        assert settings.TAG_PRUNE_ENABLED is False
        assert settings.CIRCUIT_BREAKER_ENABLED is True
        assert settings.LOG_LEVEL == "INFO"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "rediss://cache.internal:6380/2")
        monkeypatch.setenv("TAG_PRUNE_ENABLED", "true")
        monkeypatch.setenv("CACHE_DEFAULT_EXPIRY_MINUTES", "5")

        settings = Settings(_env_file=None)

        assert settings.REDIS_URL == "rediss://cache.internal:6380/2"
        assert settings.TAG_PRUNE_ENABLED is True
        assert settings.default_expiry_seconds == 300

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, LOG_LEVEL="warning").LOG_LEVEL == "WARNING"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"ENVIRONMENT": "qa"},
            {"REDIS_URL": "http://localhost:6379"},
            {"LOG_LEVEL": "LOUD"},
            {"CACHE_TAG_PREFIX": ""},
            {"CACHE_TAG_PREFIX": "tag :"},
            {"CACHE_TAG_PREFIX": "idx:", "CACHE_KEY_TAGS_PREFIX": "idx:keys:"},
            {"TAG_PRUNE_INTERVAL_SECONDS": 1},
            {"CACHE_DEFAULT_EXPIRY_MINUTES": 0},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)
