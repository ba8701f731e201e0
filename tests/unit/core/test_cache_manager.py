"""Tests unitarios para los caches de pedidos (Redis y memoria)."""

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from orderflow.core.cache_manager import InMemoryOrderCache, RedisOrderCache
from orderflow.domain.models import Order
from orderflow.utils.error_handler import CacheMissException, CacheUnavailableException


class TestRedisOrderCache:
    """Cache sobre redis.asyncio con el cliente mockeado."""

    @pytest.mark.asyncio
    async def test_set_stores_json_with_expiry(self, sample_order):
        client = AsyncMock()
        cache = RedisOrderCache(client)

        await cache.set(sample_order.order_uid, sample_order, 86400)

        client.set.assert_awaited_once_with(sample_order.order_uid, sample_order.model_dump_json(), ex=86400)

    @pytest.mark.asyncio
    async def test_get_decodes_model(self, sample_order):
        client = AsyncMock()
        client.get.return_value = sample_order.model_dump_json()
        cache = RedisOrderCache(client)

        result = await cache.get(sample_order.order_uid, Order)

        assert result == sample_order

    @pytest.mark.asyncio
    async def test_absent_key_is_a_miss(self):
        client = AsyncMock()
        client.get.return_value = None
        cache = RedisOrderCache(client)

        with pytest.raises(CacheMissException):
            await cache.get("A1", Order)

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable_not_miss(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("connection refused")
        cache = RedisOrderCache(client)

        with pytest.raises(CacheUnavailableException) as exc_info:
            await cache.get("A1", Order)

        assert exc_info.value.operation == "get"

    @pytest.mark.asyncio
    async def test_set_transport_error(self, sample_order):
        client = AsyncMock()
        client.set.side_effect = RedisConnectionError("connection refused")
        cache = RedisOrderCache(client)

        with pytest.raises(CacheUnavailableException):
            await cache.set(sample_order.order_uid, sample_order, 60)

    @pytest.mark.asyncio
    async def test_corrupted_payload_is_unavailable(self):
        client = AsyncMock()
        client.get.return_value = '{"order_uid": "A1"}'
        cache = RedisOrderCache(client)

        with pytest.raises(CacheUnavailableException) as exc_info:
            await cache.get("A1", Order)

        assert exc_info.value.operation == "decode"

    @pytest.mark.asyncio
    async def test_key_prefix(self, sample_order):
        client = AsyncMock()
        cache = RedisOrderCache(client, key_prefix="order:")

        await cache.delete("A1")

        client.delete.assert_awaited_once_with("order:A1")

    @pytest.mark.asyncio
    async def test_health_check_reports_unhealthy(self):
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("down")

        health = await RedisOrderCache(client).health_check()

        assert health["status"] == "unhealthy"


class TestInMemoryOrderCache:
    """Cache en memoria con la misma semántica."""

    @pytest.mark.asyncio
    async def test_round_trip_returns_independent_copy(self, sample_order):
        cache = InMemoryOrderCache()
        await cache.set(sample_order.order_uid, sample_order, 60)

        first = await cache.get(sample_order.order_uid, Order)
        first.items.clear()
        second = await cache.get(sample_order.order_uid, Order)

        assert second == sample_order

    @pytest.mark.asyncio
    async def test_miss(self):
        with pytest.raises(CacheMissException):
            await InMemoryOrderCache().get("missing", Order)

    @pytest.mark.asyncio
    async def test_entry_expires(self, sample_order):
        cache = InMemoryOrderCache()

        with patch("orderflow.core.cache_manager.time.monotonic", return_value=1000.0):
            await cache.set(sample_order.order_uid, sample_order, 10)

        with patch("orderflow.core.cache_manager.time.monotonic", return_value=1010.0):
            with pytest.raises(CacheMissException):
                await cache.get(sample_order.order_uid, Order)

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_delete(self, sample_order):
        cache = InMemoryOrderCache()
        await cache.set(sample_order.order_uid, sample_order, 60)

        assert await cache.delete(sample_order.order_uid) is True
        assert await cache.delete(sample_order.order_uid) is False
