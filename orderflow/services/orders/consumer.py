"""
OrderConsumer - ingestion loop from the order topic.

Processes one message at a time: fetch, decode, validate, persist with
bounded exponential backoff, commit. Every terminal outcome (persisted,
undecodable, invalid, retries exhausted) is committed so a poison message
never blocks its partition. Cancelling the task abandons the in-flight
message without committing it.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from orderflow.core.config import get_settings
from orderflow.core.logging_config import log_consumer_outcome
from orderflow.core.metrics import OrderMetrics
from orderflow.domain.models import Order
from orderflow.services.orders.interfaces import IQueueClient, IQueueMessage
from orderflow.services.orders.validators import OrderValidator
from orderflow.utils.error_handler import (
    DecodeException,
    RetriesExhaustedException,
    ValidationException,
    log_error,
)
from orderflow.utils.retry_handler import RetryPolicy, create_consumer_retry_policy

settings = get_settings()


class MessageOutcome(str, Enum):
    """Terminal result of processing one message."""

    PERSISTED = "persisted"
    DECODE_FAILED = "decode_failed"
    VALIDATION_FAILED = "validation_failed"
    RETRIES_EXHAUSTED = "retries_exhausted"


_OUTCOME_METRICS = {
    MessageOutcome.PERSISTED: "messages_persisted",
    MessageOutcome.DECODE_FAILED: "messages_skipped_decode",
    MessageOutcome.VALIDATION_FAILED: "messages_skipped_validation",
    MessageOutcome.RETRIES_EXHAUSTED: "messages_exhausted",
}


def _message_offset(message: IQueueMessage) -> Optional[int]:
    return message.offset()


class OrderConsumer:
    """
    Sequential consumer of order messages.

    The order service only needs a ``create_order(order)`` coroutine; in
    production it is the OrderOrchestrator.
    """

    def __init__(
        self,
        queue: IQueueClient,
        order_service: Any,
        validator: Optional[OrderValidator] = None,
        retry_policy: Optional[RetryPolicy] = None,
        metrics: Optional[OrderMetrics] = None,
        logger: Optional[logging.Logger] = None,
        fetch_error_backoff: float = settings.KAFKA_FETCH_ERROR_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            queue: Queue client (fetch/commit/close)
            order_service: Object exposing ``async create_order(order)``
            validator: Business rule validator
            retry_policy: Backoff policy for persistence failures
            metrics: Outcome counters
            logger: Logger (defaults to the module logger)
            fetch_error_backoff: Seconds to wait after a failed fetch
            sleep: Awaitable sleep used for every wait (must honour cancellation)
        """
        self.queue = queue
        self.order_service = order_service
        self.validator = validator or OrderValidator()
        self.retry_policy = retry_policy or create_consumer_retry_policy()
        self.metrics = metrics or OrderMetrics()
        self.logger = logger or logging.getLogger(__name__)
        self.fetch_error_backoff = fetch_error_backoff
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    # === CICLO DE VIDA ===

    def start(self) -> asyncio.Task:
        """Start the loop as a background task."""
        if self.is_running:
            return self._task

        self._task = asyncio.create_task(self.run(), name="order-consumer")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop, wait for it to finish and close the queue client."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        await self.queue.close()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> str:
        if self._task is None:
            return "not_started"
        if not self._task.done():
            return "running"
        if self._task.cancelled():
            return "stopped"
        return "failed" if self._task.exception() else "stopped"

    # === LOOP PRINCIPAL ===

    async def run(self) -> None:
        """
        Consume until cancelled.

        Fetch errors are logged and retried after a pause without committing;
        commit errors are logged and the loop moves on.
        """
        self.logger.info("Order consumer started")
        try:
            while True:
                try:
                    message = await self.queue.fetch()
                except Exception as e:
                    self.metrics.increment("fetch_errors")
                    self.logger.error(f"Failed to fetch message: {e}")
                    await self._sleep(self.fetch_error_backoff)
                    continue

                await self.process_message(message)
                await self._commit(message)
        finally:
            self.logger.info("Order consumer stopped")

    async def process_message(self, message: IQueueMessage) -> MessageOutcome:
        """
        Take one message to a terminal outcome (everything but the commit).

        Args:
            message: Message returned by the queue client

        Returns:
            MessageOutcome: Result to record before committing
        """
        offset = _message_offset(message)

        try:
            order = self._decode(message)
        except DecodeException as e:
            log_error(e, {"offset": offset}, level=logging.WARNING)
            return self._record(MessageOutcome.DECODE_FAILED, offset=offset)

        try:
            self.validator.validate(order)
        except ValidationException as e:
            log_error(e, {"offset": offset, "order_uid": order.order_uid}, level=logging.WARNING)
            return self._record(MessageOutcome.VALIDATION_FAILED, offset=offset, order_uid=order.order_uid)

        try:
            attempts = await self._persist_with_retry(order)
        except RetriesExhaustedException as e:
            log_error(e, {"offset": offset})
            return self._record(
                MessageOutcome.RETRIES_EXHAUSTED, offset=offset, order_uid=order.order_uid, attempts=e.attempts
            )

        return self._record(MessageOutcome.PERSISTED, offset=offset, order_uid=order.order_uid, attempts=attempts)

    def _decode(self, message: IQueueMessage) -> Order:
        payload = message.value()
        if not payload:
            raise DecodeException("Empty message payload", offset=_message_offset(message))

        try:
            return Order.model_validate_json(payload)
        except ValidationError as e:
            raise DecodeException(
                f"Invalid order payload: {e.error_count()} errors, first: {e.errors()[0]['msg']}",
                offset=_message_offset(message),
            ) from e

    async def _persist_with_retry(self, order: Order) -> int:
        """
        Call create_order until it succeeds or the policy gives up.

        Returns:
            int: Attempts used

        Raises:
            RetriesExhaustedException: After the last allowed attempt fails
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                await self.order_service.create_order(order)
                return attempt
            except Exception as e:
                if not self.retry_policy.should_retry(e, attempt):
                    raise RetriesExhaustedException(order.order_uid, attempt, last_error=e) from e

                delay = self.retry_policy.calculate_delay(attempt)
                self.logger.warning(
                    f"Failed to create order {order.order_uid}, retrying in {delay:.1f}s "
                    f"(attempt {attempt}/{self.retry_policy.max_attempts}): {e}",
                    extra={"order_uid": order.order_uid, "attempt": attempt, "delay": delay},
                )
                await self._sleep(delay)

    async def _commit(self, message: IQueueMessage) -> None:
        try:
            await self.queue.commit(message)
            self.logger.debug(f"Message committed at offset {_message_offset(message)}")
        except Exception as e:
            self.metrics.increment("commit_failures")
            self.logger.error(f"Failed to commit message at offset {_message_offset(message)}: {e}")

    def _record(self, outcome: MessageOutcome, **context) -> MessageOutcome:
        self.metrics.increment(_OUTCOME_METRICS[outcome])
        log_consumer_outcome(outcome.value, **context)
        return outcome
