"""Fixtures compartidos: pedidos de ejemplo y mensajes de cola en memoria."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from orderflow.domain.models import Delivery, Item, Order, Payment


def build_order(order_uid: str = "b563feb7b2b84b6test", items: Optional[list] = None, **overrides: Any) -> Order:
    """Pedido válido; ``overrides`` reemplaza campos de primer nivel."""
    if items is None:
        items = [
            Item(
                chrt_id=9934930,
                track_number="WBILMTESTTRACK",
                price=453,
                rid="ab4219087a764ae0btest",
                name="Mascaras",
                sale=30,
                size="0",
                total_price=317,
                nm_id=2389212,
                brand="Vivienne Sabo",
                status=202,
            )
        ]

    fields: dict[str, Any] = {
        "order_uid": order_uid,
        "track_number": "WBILMTESTTRACK",
        "entry": "WBIL",
        "delivery": Delivery(
            name="Test Testov",
            phone="+9720000000",
            zip="2639809",
            city="Kiryat Mozkin",
            address="Ploshad Mira 15",
            region="Kraiot",
            email="test@gmail.com",
        ),
        "payment": Payment(
            transaction=f"trans-{order_uid}",
            currency="USD",
            provider="wbpay",
            amount=1817,
            payment_dt=1637907727,
            bank="alpha",
            delivery_cost=1500,
            goods_total=317,
        ),
        "items": items,
        "locale": "en",
        "customer_id": "test",
        "delivery_service": "meest",
        "shardkey": "9",
        "sm_id": 99,
        "date_created": datetime(2021, 11, 26, 6, 22, 19, tzinfo=timezone.utc),
        "oof_shard": "1",
    }
    fields.update(overrides)
    return Order(**fields)


class FakeMessage:
    """Mensaje con la misma interfaz que confluent_kafka.Message."""

    def __init__(self, payload: Optional[bytes], offset: int = 0, key: Optional[bytes] = None):
        self._payload = payload
        self._offset = offset
        self._key = key

    def value(self):
        return self._payload

    def key(self):
        return self._key

    def offset(self):
        return self._offset


class FakeQueue:
    """Cola en memoria: entrega mensajes en orden y luego bloquea hasta ser cancelada."""

    def __init__(self, messages: Optional[list] = None):
        self.messages = list(messages or [])
        self.committed: list = []
        self.closed = False

    async def fetch(self):
        if self.messages:
            item = self.messages.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        await asyncio.Event().wait()

    async def commit(self, message):
        self.committed.append(message)

    async def close(self):
        self.closed = True


async def wait_until(condition, timeout: float = 2.0) -> None:
    """Espera activa hasta que ``condition()`` sea verdadera."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def sample_order() -> Order:
    return build_order()


def order_message(order: Order, offset: int = 0) -> FakeMessage:
    return FakeMessage(order.model_dump_json().encode("utf-8"), offset=offset, key=order.order_uid.encode())
