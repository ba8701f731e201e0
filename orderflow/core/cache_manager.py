"""
Cache management for orders.

This module provides the key/value cache used by the orchestration layer,
with a Redis implementation for production and an in-memory one for
tests and local runs. Both distinguish a genuine miss
(``CacheMissException``) from a degraded cache (``CacheUnavailableException``).
"""

import logging
import time
from typing import Dict, Optional, Tuple, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from orderflow.utils.error_handler import CacheMissException, CacheUnavailableException

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RedisOrderCache:
    """
    Redis-backed cache: ``SET key <json> EX ttl`` / ``GET key``.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        """
        Args:
            client: redis.asyncio client (shared connection pool)
            key_prefix: Optional namespace prepended to every key
        """
        self.client = client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def set(self, key: str, value: BaseModel, ttl: int) -> None:
        """
        Store a model serialized as JSON with expiry.

        Args:
            key: Cache key
            value: Pydantic model to serialize
            ttl: Time to live in seconds

        Raises:
            CacheUnavailableException: On transport errors
        """
        payload = value.model_dump_json()
        try:
            await self.client.set(self._key(key), payload, ex=ttl)
        except RedisError as e:
            raise CacheUnavailableException(
                message=f"Failed to set cache key {key}: {e}", key=key, operation="set"
            ) from e

        logger.debug(f"Cached key {key} with ttl {ttl}s")

    async def get(self, key: str, model: type[ModelT]) -> ModelT:
        """
        Retrieve and decode a cached model.

        Args:
            key: Cache key
            model: Pydantic model class to decode into

        Returns:
            Decoded model instance

        Raises:
            CacheMissException: If the key is absent or expired
            CacheUnavailableException: On transport errors or an undecodable payload
        """
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as e:
            raise CacheUnavailableException(
                message=f"Failed to get cache key {key}: {e}", key=key, operation="get"
            ) from e

        if raw is None:
            raise CacheMissException(key)

        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise CacheUnavailableException(
                message=f"Corrupted cache entry for key {key}", key=key, operation="decode"
            ) from e

    async def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            bool: True if the key existed
        """
        try:
            return bool(await self.client.delete(self._key(key)))
        except RedisError as e:
            raise CacheUnavailableException(
                message=f"Failed to delete cache key {key}: {e}", key=key, operation="delete"
            ) from e

    async def health_check(self) -> dict:
        start_time = time.time()
        try:
            await self.client.ping()
            status = "healthy"
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            status = "unhealthy"

        return {"status": status, "response_time_ms": round((time.time() - start_time) * 1000, 2)}

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryOrderCache:
    """
    Process-local cache with the same contract as RedisOrderCache.

    Values are stored serialized so a cached object is never shared with the
    caller. Expired entries are dropped lazily on access.
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    async def set(self, key: str, value: BaseModel, ttl: int) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._entries[key] = (value.model_dump_json(), expires_at)

    async def get(self, key: str, model: type[ModelT]) -> ModelT:
        entry = self._entries.get(key)
        if entry is None:
            raise CacheMissException(key)

        payload, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._entries[key]
            raise CacheMissException(key)

        try:
            return model.model_validate_json(payload)
        except ValidationError as e:
            raise CacheUnavailableException(
                message=f"Corrupted cache entry for key {key}", key=key, operation="decode"
            ) from e

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def health_check(self) -> dict:
        return {"status": "healthy", "entries": len(self._entries)}

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
