"""
Cliente Redis para el cache de pedidos.

Este módulo gestiona el pool de conexiones Redis compartido por la
aplicación (creación, verificación y cierre).
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from orderflow.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Returns the shared Redis client instance.

    The pool connects lazily: no I/O happens until the first command.

    Returns:
        redis.Redis: Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
        logger.debug("Redis client instance created")

    return _redis_client


async def test_redis_connection(client: Optional[redis.Redis] = None) -> bool:
    """
    Verifica la conectividad con Redis.

    Returns:
        bool: True si la conexión es exitosa, False en caso contrario
    """
    client = client or get_redis_client()
    try:
        return bool(await client.ping())
    except RedisError as e:
        logger.error(f"Redis connection test failed: {e}")
        return False


async def initialize_redis() -> redis.Redis:
    """
    Crea el cliente y verifica la conexión.

    Un Redis inaccesible no impide el arranque: el cache degrada a misses.

    Returns:
        redis.Redis: Cliente compartido
    """
    client = get_redis_client()

    if await test_redis_connection(client):
        logger.info(f"Redis connected at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
    else:
        logger.warning("Redis not reachable at startup, reads will fall back to the database")

    return client


async def close_redis() -> None:
    """
    Cierra el pool de conexiones Redis.
    """
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection pool closed")
