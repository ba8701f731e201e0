#!/usr/bin/env python3
"""
Publicar pedidos de ejemplo en el topic de Kafka.

Envía un pedido canónico y N variantes (order_uid "1".."N", track y
transacción propios, monto incrementado) para probar el pipeline en local.

Examples:
    python scripts/produce_sample_orders.py
    python scripts/produce_sample_orders.py --variants 3 --topic orders
"""

import argparse
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from orderflow.clients.kafka_client import OrderProducer
from orderflow.core.config import get_settings
from orderflow.domain.models import Delivery, Item, Order, Payment
from orderflow.utils.error_handler import QueueUnavailableException

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEND_ATTEMPTS = 5
SEND_RETRY_DELAY_SECONDS = 2.0


def build_canonical_order(created_at: Optional[datetime] = None) -> Order:
    """Pedido de referencia con un único item."""
    return Order(
        order_uid="b563feb7b2b84b6test",
        track_number="WBILMTESTTRACK",
        entry="WBIL",
        delivery=Delivery(
            name="Test Testov",
            phone="+9720000000",
            zip="2639809",
            city="Kiryat Mozkin",
            address="Ploshad Mira 15",
            region="Kraiot",
            email="test@gmail.com",
        ),
        payment=Payment(
            transaction="b563feb7b2b84b6test",
            request_id="",
            currency="USD",
            provider="wbpay",
            amount=1817,
            payment_dt=1637907727,
            bank="alpha",
            delivery_cost=1500,
            goods_total=317,
            custom_fee=0,
        ),
        items=[
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
        ],
        locale="en",
        internal_signature="",
        customer_id="test",
        delivery_service="meest",
        shardkey="9",
        sm_id=99,
        date_created=created_at or datetime.now(timezone.utc),
        oof_shard="1",
    )


def build_sample_orders(variants: int, created_at: Optional[datetime] = None) -> List[Order]:
    """
    Pedido canónico seguido de ``variants`` copias con identificadores propios.

    Args:
        variants: Número de variantes
        created_at: Fecha de creación común

    Returns:
        List[Order]: Pedidos a publicar, en orden de envío
    """
    canonical = build_canonical_order(created_at)
    orders = [canonical]

    for i in range(1, variants + 1):
        variant = canonical.model_copy(
            deep=True,
            update={"order_uid": str(i), "track_number": f"TRACK-{i}"},
        )
        variant.payment.transaction = f"trans-{i}"
        variant.payment.amount += i
        orders.append(variant)

    return orders


def send_order(producer: OrderProducer, order: Order) -> bool:
    """Envía un pedido con reintentos. Retorna True si fue entregado."""
    payload = order.model_dump_json().encode("utf-8")

    for attempt in range(1, SEND_ATTEMPTS + 1):
        try:
            producer.send(order.order_uid, payload)
            logger.info(f"Sent order: {order.order_uid}")
            return True
        except QueueUnavailableException as e:
            logger.warning(f"Attempt {attempt}/{SEND_ATTEMPTS} for {order.order_uid} failed: {e}")
            if attempt < SEND_ATTEMPTS:
                time.sleep(SEND_RETRY_DELAY_SECONDS)

    logger.error(f"Failed to send order {order.order_uid} after {SEND_ATTEMPTS} attempts")
    return False


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Publish sample orders to Kafka")
    parser.add_argument("--variants", type=int, default=12, help="Number of variant orders (default 12)")
    parser.add_argument("--topic", type=str, default=settings.KAFKA_TOPIC, help="Target topic")
    args = parser.parse_args()

    producer = OrderProducer(config=settings.kafka_producer_config, topic=args.topic)

    sent = sum(send_order(producer, order) for order in build_sample_orders(args.variants))
    producer.close()

    logger.info(f"All orders sent! ({sent}/{args.variants + 1} delivered)")


if __name__ == "__main__":
    main()
