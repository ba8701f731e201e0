"""
OrderOrchestrator - coordinates the order store with the cache.

Write path: persist in the store, then populate the cache (write-through,
best effort). Read path: cache first, store on miss, then repopulate the
cache (cache-aside). Cache failures never reach the caller.
"""

import asyncio
import logging
from typing import Optional

from orderflow.core.config import Settings, get_settings
from orderflow.core.metrics import OrderMetrics
from orderflow.domain.models import Order
from orderflow.services.orders.interfaces import IOrderCache, IOrderRepository
from orderflow.utils.error_handler import (
    CacheMissException,
    OrderNotFoundException,
    OrderServiceException,
)

settings = get_settings()


class OrderOrchestrator:
    """
    Orchestrates order persistence and retrieval.

    Stateless between calls; every collaborator is injected via constructor.
    """

    def __init__(
        self,
        repository: IOrderRepository,
        cache: IOrderCache,
        metrics: Optional[OrderMetrics] = None,
        logger: Optional[logging.Logger] = None,
        cache_ttl: int = settings.CACHE_ORDER_TTL_SECONDS,
        cache_read_timeout: float = settings.cache_read_timeout,
        cache_write_timeout: float = settings.cache_write_timeout,
    ):
        """
        Initialize orchestrator with its dependencies (DIP).

        Args:
            repository: Persistent order store
            cache: Order cache
            metrics: Counters for created orders and cache hits/misses
            logger: Logger (defaults to the module logger)
            cache_ttl: Expiry of cached orders in seconds
            cache_read_timeout: Budget for a cache read in seconds
            cache_write_timeout: Budget for a cache write in seconds
        """
        self.repository = repository
        self.cache = cache
        self.metrics = metrics or OrderMetrics()
        self.logger = logger or logging.getLogger(__name__)
        self.cache_ttl = cache_ttl
        self.cache_read_timeout = cache_read_timeout
        self.cache_write_timeout = cache_write_timeout

    async def create_order(self, order: Order) -> None:
        """
        Persist an order and populate the cache.

        Re-creating an existing order succeeds without changes.

        Args:
            order: Validated order

        Raises:
            AppException: Any store failure, unchanged
        """
        await self.repository.write_order(order)

        self.metrics.increment("orders_created")
        self.logger.info(f"Order {order.order_uid} created")

        await self._populate_cache(order)

    async def get_order(self, order_uid: str) -> Order:
        """
        Retrieve an order, from the cache when possible.

        Args:
            order_uid: Order identifier

        Returns:
            Order: Full aggregate

        Raises:
            OrderNotFoundException: If the order does not exist
            OrderServiceException: On any other store failure
        """
        try:
            order = await asyncio.wait_for(self.cache.get(order_uid, Order), timeout=self.cache_read_timeout)
            self.metrics.increment("cache_hits")
            self.logger.debug(f"Cache hit for order {order_uid}")
            return order
        except CacheMissException:
            pass
        except asyncio.TimeoutError:
            self.logger.warning(f"Cache read for order {order_uid} timed out after {self.cache_read_timeout}s")
        except Exception as e:
            self.logger.error(f"Cache read failed for order {order_uid}: {e}")

        self.metrics.increment("cache_misses")

        try:
            order = await self.repository.read_order(order_uid)
        except OrderNotFoundException:
            raise
        except Exception as e:
            self.logger.error(f"Failed to read order {order_uid} from store: {e}")
            raise OrderServiceException(
                message=f"Failed to get order {order_uid}",
                operation="get_order",
            ) from e

        await self._populate_cache(order)
        return order

    async def _populate_cache(self, order: Order) -> None:
        try:
            await asyncio.wait_for(
                self.cache.set(order.order_uid, order, self.cache_ttl),
                timeout=self.cache_write_timeout,
            )
        except asyncio.TimeoutError:
            self.logger.error(f"Cache set for order {order.order_uid} timed out")
        except Exception as e:
            self.logger.error(f"Cache set failed for order {order.order_uid}: {e}")


def create_orchestrator(
    repository: IOrderRepository,
    cache: IOrderCache,
    metrics: Optional[OrderMetrics] = None,
    app_settings: Optional[Settings] = None,
) -> OrderOrchestrator:
    """
    Factory function to create an orchestrator configured from settings.

    Args:
        repository: Persistent order store
        cache: Order cache
        metrics: Shared counters
        app_settings: Configuration (defaults to global settings)

    Returns:
        OrderOrchestrator: Configured orchestrator
    """
    app_settings = app_settings or settings

    return OrderOrchestrator(
        repository=repository,
        cache=cache,
        metrics=metrics,
        cache_ttl=app_settings.CACHE_ORDER_TTL_SECONDS,
        cache_read_timeout=app_settings.cache_read_timeout,
        cache_write_timeout=app_settings.cache_write_timeout,
    )
