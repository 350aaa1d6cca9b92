"""Tests for cache service."""

from unittest.mock import MagicMock, patch

import redis

from careermirror.integrations.cache import NullCacheService, RedisCacheService, create_cache_service


class TestNullCacheService:
    def test_get_json_returns_none(self):
        assert NullCacheService().get_json("any_key") is None

    def test_set_json_does_nothing(self):
        NullCacheService().set_json("key", {"data": "test"}, 60)  # Should not raise


class TestRedisCacheService:
    def _service(self, fake):
        with patch("careermirror.integrations.cache.redis.from_url", return_value=fake):
            return RedisCacheService("redis://localhost:6379/0")

    def test_round_trip(self):
        fake = MagicMock()
        service = self._service(fake)
        service.set_json("k", {"a": 1}, 60)
        fake.setex.assert_called_once_with("k", 60, '{"a": 1}')

        fake.get.return_value = '{"a": 1}'
        assert service.get_json("k") == {"a": 1}

    def test_read_error_is_a_miss(self):
        fake = MagicMock()
        fake.get.side_effect = redis.ConnectionError("down")
        assert self._service(fake).get_json("k") is None

    def test_write_error_swallowed(self):
        fake = MagicMock()
        fake.setex.side_effect = redis.ConnectionError("down")
        self._service(fake).set_json("k", {"a": 1}, 60)

    def test_corrupt_entry_is_a_miss(self):
        fake = MagicMock()
        fake.get.return_value = "{not json"
        assert self._service(fake).get_json("k") is None


class TestCreateCacheService:
    def test_no_url_gives_null_cache(self):
        assert isinstance(create_cache_service(""), NullCacheService)

    def test_unreachable_redis_gives_null_cache(self):
        fake = MagicMock()
        fake.ping.side_effect = redis.ConnectionError("refused")
        with patch("careermirror.integrations.cache.redis.from_url", return_value=fake):
            assert isinstance(create_cache_service("redis://nowhere:6379/0"), NullCacheService)
