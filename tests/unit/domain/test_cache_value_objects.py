"""
Unit tests for cache domain value objects.
"""

from datetime import timedelta

import pytest

from tagcache.domain.cache.value_objects import (
    TTL,
    CacheKey,
    CacheLookup,
    CacheTag,
    LookupStatus,
)


class TestCacheKey:
    """Test CacheKey value object."""

    def test_valid_key(self):
        assert CacheKey("categoryid:5_active:True").value == "categoryid:5_active:True"

    @pytest.mark.parametrize("bad", ["", "has space", "tab\there", "x" * 513])
    def test_invalid_keys_rejected(self, bad):
        with pytest.raises(ValueError):
            CacheKey(bad)

    def test_non_string_rejected(self):
        with pytest.raises(ValueError):
            CacheKey(None)

    def test_build_joins_parts(self):
        key = CacheKey.build("category", 5, "active", True, None)
        assert key.value == "category:5:active:True:"
        assert str(key) == key.value


class TestCacheTag:
    """Test CacheTag value object."""

    def test_valid_tag(self):
        assert str(CacheTag("category")) == "category"

    @pytest.mark.parametrize("bad", ["", "two words", "x" * 129])
    def test_invalid_tags_rejected(self, bad):
        with pytest.raises(ValueError):
            CacheTag(bad)


class TestTTL:
    """Test TTL value object."""

    def test_factories(self):
        assert TTL.minutes(30).seconds == 1800
        assert TTL.hours(1).seconds == 3600
        assert TTL.days(1).seconds == 86400

    def test_long_expiry_accepted(self):
        assert TTL.days(400).milliseconds == 400 * 86400 * 1000

    @pytest.mark.parametrize("bad", [0, -1, -0.5])
    def test_non_positive_rejected(self, bad):
        with pytest.raises(ValueError):
            TTL(bad)

    def test_coerce(self):
        assert TTL.coerce(timedelta(minutes=10)).seconds == 600
        assert TTL.coerce(45).seconds == 45
        ttl = TTL(5)
        assert TTL.coerce(ttl) is ttl

    @pytest.mark.parametrize("bad", ["10", True, None])
    def test_coerce_rejects_other_types(self, bad):
        with pytest.raises(ValueError):
            TTL.coerce(bad)

    def test_milliseconds_never_zero(self):
        assert TTL(0.0001).milliseconds == 1
        assert TTL(1.5).milliseconds == 1500
        assert TTL(2).to_timedelta() == timedelta(seconds=2)


class TestCacheLookup:
    """Test CacheLookup result type."""

    def test_hit(self):
        result = CacheLookup.hit({"name": "Shoes"})
        assert result.status == LookupStatus.HIT
        assert result.is_hit
        assert result.value == {"name": "Shoes"}

    def test_miss(self):
        result = CacheLookup.miss()
        assert result.status == LookupStatus.MISS
        assert not result.is_hit
        assert not result.is_error
        assert result.value is None

    def test_failed(self):
        result = CacheLookup.failed(RuntimeError("boom"))
        assert result.is_error
        assert result.error == "boom"
        assert result.value is None
