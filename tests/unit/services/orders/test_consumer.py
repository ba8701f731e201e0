"""Tests unitarios para OrderConsumer (retry, poison messages, cancelación)."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from conftest import FakeMessage, FakeQueue, build_order, order_message, wait_until

from orderflow.core.cache_manager import InMemoryOrderCache
from orderflow.core.metrics import OrderMetrics
from orderflow.db.memory_repository import InMemoryOrderRepository
from orderflow.domain.models import Item
from orderflow.services.orders.consumer import MessageOutcome, OrderConsumer
from orderflow.services.orders.orchestrator import OrderOrchestrator
from orderflow.utils.error_handler import (
    OrderNotFoundException,
    QueueUnavailableException,
    StoreUnavailableException,
)
from orderflow.utils.retry_handler import RetryPolicy


class SleepRecorder:
    """Sleep que registra los delays sin esperar."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_consumer(queue, order_service, **kwargs):
    kwargs.setdefault("retry_policy", RetryPolicy(max_attempts=15, base_delay=1.0, max_delay=15.0))
    kwargs.setdefault("metrics", OrderMetrics())
    kwargs.setdefault("sleep", SleepRecorder())
    return OrderConsumer(queue=queue, order_service=order_service, **kwargs)


class TestProcessMessage:
    """Resultado terminal por mensaje."""

    @pytest.mark.asyncio
    async def test_valid_message_is_persisted(self, sample_order):
        service = AsyncMock()
        consumer = make_consumer(FakeQueue(), service)

        outcome = await consumer.process_message(order_message(sample_order))

        assert outcome == MessageOutcome.PERSISTED
        service.create_order.assert_awaited_once_with(sample_order)
        assert consumer.metrics.get("messages_persisted") == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_skipped_without_persistence(self):
        service = AsyncMock()
        consumer = make_consumer(FakeQueue(), service)

        outcome = await consumer.process_message(FakeMessage(b"{not json", offset=7))

        assert outcome == MessageOutcome.DECODE_FAILED
        service.create_order.assert_not_awaited()
        assert consumer.metrics.get("messages_skipped_decode") == 1

    @pytest.mark.asyncio
    async def test_wrong_shape_is_a_decode_failure(self):
        service = AsyncMock()
        consumer = make_consumer(FakeQueue(), service)

        outcome = await consumer.process_message(FakeMessage(b'{"order_uid": "A1"}'))

        assert outcome == MessageOutcome.DECODE_FAILED
        service.create_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_out_of_range_amount_is_a_decode_failure(self, sample_order):
        payload = sample_order.model_dump(mode="json")
        payload["items"][0]["price"] = 2**64
        service = AsyncMock()
        sleep = SleepRecorder()
        consumer = make_consumer(FakeQueue(), service, sleep=sleep)

        outcome = await consumer.process_message(FakeMessage(json.dumps(payload).encode("utf-8")))

        assert outcome == MessageOutcome.DECODE_FAILED
        service.create_order.assert_not_awaited()
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_empty_payload_is_a_decode_failure(self):
        consumer = make_consumer(FakeQueue(), AsyncMock())

        assert await consumer.process_message(FakeMessage(None)) == MessageOutcome.DECODE_FAILED

    @pytest.mark.asyncio
    async def test_invalid_order_is_skipped_without_persistence(self, sample_order):
        sample_order.delivery.email = "nope"
        service = AsyncMock()
        consumer = make_consumer(FakeQueue(), service)

        outcome = await consumer.process_message(order_message(sample_order))

        assert outcome == MessageOutcome.VALIDATION_FAILED
        service.create_order.assert_not_awaited()
        assert consumer.metrics.get("messages_skipped_validation") == 1

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self, sample_order):
        service = AsyncMock()
        service.create_order.side_effect = [StoreUnavailableException("down"), StoreUnavailableException("down"), None]
        sleep = SleepRecorder()
        consumer = make_consumer(FakeQueue(), service, sleep=sleep)

        outcome = await consumer.process_message(order_message(sample_order))

        assert outcome == MessageOutcome.PERSISTED
        assert service.create_order.await_count == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_always_failing_store_is_bounded(self, sample_order):
        service = AsyncMock()
        service.create_order.side_effect = StoreUnavailableException("down")
        sleep = SleepRecorder()
        consumer = make_consumer(FakeQueue(), service, sleep=sleep)

        outcome = await consumer.process_message(order_message(sample_order))

        assert outcome == MessageOutcome.RETRIES_EXHAUSTED
        assert service.create_order.await_count == 15
        assert len(sleep.delays) == 14
        assert sleep.delays == sorted(sleep.delays)
        assert max(sleep.delays) == 15.0
        assert sleep.delays[:5] == [1.0, 2.0, 4.0, 8.0, 15.0]
        assert consumer.metrics.get("messages_exhausted") == 1


class TestRunLoop:
    """Loop completo: fetch, proceso, commit."""

    @pytest.mark.asyncio
    async def test_every_terminal_outcome_is_committed(self, sample_order):
        failing = build_order("B2")
        messages = [
            order_message(sample_order, offset=0),
            FakeMessage(b"garbage", offset=1),
            order_message(failing, offset=2),
        ]
        queue = FakeQueue(messages)

        async def create_order(order):
            if order.order_uid == "B2":
                raise StoreUnavailableException("down")

        service = AsyncMock()
        service.create_order.side_effect = create_order
        consumer = make_consumer(queue, service, retry_policy=RetryPolicy(max_attempts=3, base_delay=1, max_delay=2))

        consumer.start()
        await wait_until(lambda: len(queue.committed) == 3)
        await consumer.stop()

        assert [m.offset() for m in queue.committed] == [0, 1, 2]
        assert consumer.metrics.get("messages_persisted") == 1
        assert consumer.metrics.get("messages_skipped_decode") == 1
        assert consumer.metrics.get("messages_exhausted") == 1
        assert queue.closed is True

    @pytest.mark.asyncio
    async def test_fetch_error_backs_off_without_commit(self, sample_order):
        queue = FakeQueue([QueueUnavailableException("broker down"), order_message(sample_order)])
        sleep = SleepRecorder()
        consumer = make_consumer(queue, AsyncMock(), sleep=sleep, fetch_error_backoff=1.0)

        consumer.start()
        await wait_until(lambda: len(queue.committed) == 1)
        await consumer.stop()

        assert sleep.delays == [1.0]
        assert consumer.metrics.get("fetch_errors") == 1

    @pytest.mark.asyncio
    async def test_commit_failure_does_not_stop_the_loop(self, sample_order):
        queue = FakeQueue([order_message(sample_order, offset=0), order_message(build_order("C3"), offset=1)])
        queue.commit = AsyncMock(side_effect=QueueUnavailableException("commit failed", operation="commit"))
        service = AsyncMock()
        consumer = make_consumer(queue, service)

        consumer.start()
        await wait_until(lambda: queue.commit.await_count == 2)
        await consumer.stop()

        assert service.create_order.await_count == 2
        assert consumer.metrics.get("commit_failures") == 2

    @pytest.mark.asyncio
    async def test_cancellation_during_backoff(self, sample_order):
        queue = FakeQueue([order_message(sample_order)])
        service = AsyncMock()
        service.create_order.side_effect = StoreUnavailableException("down")
        consumer = OrderConsumer(
            queue=queue,
            order_service=service,
            retry_policy=RetryPolicy(max_attempts=15, base_delay=30.0, max_delay=30.0),
            metrics=OrderMetrics(),
        )

        consumer.start()
        await wait_until(lambda: service.create_order.await_count == 1)
        await asyncio.wait_for(consumer.stop(), timeout=1)

        assert queue.committed == []
        assert service.create_order.await_count == 1
        assert consumer.state == "stopped"
        assert consumer.metrics.get("messages_exhausted") == 0

    @pytest.mark.asyncio
    async def test_cancellation_while_waiting_for_messages(self):
        queue = FakeQueue()
        consumer = make_consumer(queue, AsyncMock())

        consumer.start()
        await asyncio.sleep(0.01)
        assert consumer.is_running

        await asyncio.wait_for(consumer.stop(), timeout=1)

        assert not consumer.is_running
        assert queue.closed is True


class TestIngestionScenario:
    """Ingesta de A1 dos veces y consulta de un pedido inexistente."""

    @pytest.mark.asyncio
    async def test_duplicate_ingestion_and_lookup(self):
        item = Item(chrt_id=1, track_number="T-A1", price=100, rid="r-1", name="Pen", total_price=100, nm_id=1, status=1)
        order = build_order("A1", items=[item])
        order.payment.amount = 100

        repository = InMemoryOrderRepository()
        orchestrator = OrderOrchestrator(repository=repository, cache=InMemoryOrderCache())
        queue = FakeQueue([order_message(order, offset=0), order_message(order, offset=1)])
        consumer = make_consumer(queue, orchestrator)

        consumer.start()
        await wait_until(lambda: len(queue.committed) == 2)
        await consumer.stop()

        stored = await orchestrator.get_order("A1")
        assert len(stored.items) == 1
        assert stored.items[0].price == 100
        assert stored.payment.amount == 100
        assert len(repository) == 1
        assert repository.write_calls == 2

        with pytest.raises(OrderNotFoundException):
            await orchestrator.get_order("ZZZ")
