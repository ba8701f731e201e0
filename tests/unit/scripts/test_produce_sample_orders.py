"""Tests del script de publicación de pedidos de ejemplo."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from scripts.produce_sample_orders import build_sample_orders, send_order

from orderflow.services.orders.validators import OrderValidator
from orderflow.utils.error_handler import QueueUnavailableException

CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestBuildSampleOrders:
    def test_canonical_plus_variants(self):
        orders = build_sample_orders(3, created_at=CREATED_AT)

        assert [order.order_uid for order in orders] == ["b563feb7b2b84b6test", "1", "2", "3"]
        assert orders[2].track_number == "TRACK-2"
        assert orders[2].payment.transaction == "trans-2"
        assert orders[2].payment.amount == orders[0].payment.amount + 2

    def test_variants_do_not_share_state(self):
        canonical, variant = build_sample_orders(1, created_at=CREATED_AT)

        assert canonical.payment.transaction == "b563feb7b2b84b6test"
        assert variant.payment is not canonical.payment

    def test_every_sample_passes_validation(self):
        validator = OrderValidator()

        for order in build_sample_orders(12, created_at=CREATED_AT):
            validator.validate(order)


class TestSendOrder:
    def test_sends_keyed_payload(self):
        producer = MagicMock()
        order = build_sample_orders(0, created_at=CREATED_AT)[0]

        assert send_order(producer, order) is True
        producer.send.assert_called_once_with(order.order_uid, order.model_dump_json().encode("utf-8"))

    @patch("scripts.produce_sample_orders.time.sleep")
    def test_gives_up_without_pausing_after_last_attempt(self, mock_sleep):
        producer = MagicMock()
        producer.send.side_effect = QueueUnavailableException("broker down")
        order = build_sample_orders(0, created_at=CREATED_AT)[0]

        assert send_order(producer, order) is False
        assert producer.send.call_count == 5
        assert mock_sleep.call_count == 4

    @patch("scripts.produce_sample_orders.time.sleep")
    def test_recovers_after_failure(self, mock_sleep):
        producer = MagicMock()
        producer.send.side_effect = [QueueUnavailableException("broker down"), None]
        order = build_sample_orders(0, created_at=CREATED_AT)[0]

        assert send_order(producer, order) is True
        mock_sleep.assert_called_once_with(2.0)
