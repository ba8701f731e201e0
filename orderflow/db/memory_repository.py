"""
In-memory order repository.

Same contract as SQLOrderRepository, used by tests and local runs without
PostgreSQL. Orders are stored serialized, so callers never share state
with the store.
"""

import asyncio
import logging
from typing import Dict

from orderflow.domain.models import Order
from orderflow.utils.error_handler import OrderNotFoundException, StoreUnavailableException

logger = logging.getLogger(__name__)


class InMemoryOrderRepository:
    """Dictionary-backed order store keyed by order_uid."""

    def __init__(self):
        self._orders: Dict[str, str] = {}
        self._transactions: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self.write_calls = 0
        self.read_calls = 0

    async def write_order(self, order: Order) -> None:
        async with self._lock:
            self.write_calls += 1

            if order.order_uid in self._orders:
                logger.info(f"Order {order.order_uid} already stored, skipping")
                return

            owner = self._transactions.get(order.payment.transaction)
            if owner is not None:
                raise StoreUnavailableException(
                    message=f"Payment transaction {order.payment.transaction} already belongs to order {owner}",
                    operation="write_order",
                )

            self._orders[order.order_uid] = order.model_dump_json()
            self._transactions[order.payment.transaction] = order.order_uid

    async def read_order(self, order_uid: str) -> Order:
        self.read_calls += 1

        payload = self._orders.get(order_uid)
        if payload is None:
            raise OrderNotFoundException(order_uid)

        return Order.model_validate_json(payload)

    async def health_check(self) -> dict:
        return {"status": "healthy", "orders": len(self._orders)}

    def __len__(self) -> int:
        return len(self._orders)
