"""
Kafka clients for the order topic.

KafkaQueueClient wraps a confluent_kafka.Consumer with manual per-message
commits for the ingestion loop. Blocking librdkafka calls run in a worker
thread with a short poll timeout so task cancellation is observed between
polls. A cancelled fetch leaves its poll running in the worker thread, so
calls on the underlying consumer are serialized by a lock and close waits
for that poll to return. OrderProducer publishes orders keyed by order_uid.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, Optional

from confluent_kafka import Consumer, KafkaError, KafkaException, Message, Producer

from orderflow.core.config import Settings, get_settings
from orderflow.utils.error_handler import QueueUnavailableException

logger = logging.getLogger(__name__)


class KafkaQueueClient:
    """
    Consumer-group client: fetch one message at a time, commit explicitly.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        topic: str,
        poll_timeout: float = 1.0,
        consumer: Optional[Consumer] = None,
    ):
        """
        Args:
            config: confluent-kafka consumer configuration
            topic: Topic to subscribe to
            poll_timeout: Seconds per poll call
            consumer: Pre-built consumer (tests)
        """
        self.config = config
        self.topic = topic
        self.poll_timeout = poll_timeout
        self._consumer = consumer
        self._subscribed = False
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "KafkaQueueClient":
        settings = settings or get_settings()
        return cls(
            config=settings.kafka_consumer_config,
            topic=settings.KAFKA_TOPIC,
            poll_timeout=settings.KAFKA_POLL_TIMEOUT_SECONDS,
        )

    def _ensure_subscribed(self) -> Consumer:
        if self._consumer is None:
            self._consumer = Consumer(self.config)
        if not self._subscribed:
            self._consumer.subscribe([self.topic])
            self._subscribed = True
            logger.info(f"Subscribed to topic '{self.topic}' as group '{self.config.get('group.id')}'")
        return self._consumer

    async def fetch(self) -> Message:
        """
        Block until the next message arrives.

        Returns:
            Message: Next message from the assigned partitions

        Raises:
            QueueUnavailableException: On broker or client errors
        """
        try:
            consumer = self._ensure_subscribed()
        except KafkaException as e:
            raise QueueUnavailableException(
                message=f"Failed to subscribe to {self.topic}: {e}", topic=self.topic, operation="subscribe"
            ) from e

        while True:
            try:
                message = await asyncio.to_thread(self._poll, consumer)
            except KafkaException as e:
                raise QueueUnavailableException(
                    message=f"Poll failed: {e}", topic=self.topic, operation="fetch"
                ) from e

            if message is None:
                continue

            error = message.error()
            if error is None:
                return message

            if error.code() == KafkaError._PARTITION_EOF:
                continue

            raise QueueUnavailableException(message=f"Fetch error: {error}", topic=self.topic, operation="fetch")

    async def commit(self, message: Message) -> None:
        """
        Synchronously commit the offset following ``message``.

        Raises:
            QueueUnavailableException: If the commit fails
        """
        if self._consumer is None:
            raise QueueUnavailableException(message="Consumer not started", topic=self.topic, operation="commit")

        try:
            await asyncio.to_thread(self._commit, self._consumer, message)
        except KafkaException as e:
            raise QueueUnavailableException(
                message=f"Commit failed at offset {message.offset()}: {e}", topic=self.topic, operation="commit"
            ) from e

    async def close(self) -> None:
        if self._consumer is None:
            return

        await asyncio.to_thread(self._close, self._consumer)
        self._consumer = None
        self._subscribed = False
        logger.info("Kafka consumer closed")

    def _poll(self, consumer: Consumer) -> Optional[Message]:
        with self._lock:
            return consumer.poll(self.poll_timeout)

    def _commit(self, consumer: Consumer, message: Message) -> None:
        with self._lock:
            consumer.commit(message=message, asynchronous=False)

    def _close(self, consumer: Consumer) -> None:
        with self._lock:
            consumer.close()


class OrderProducer:
    """
    Publishes order payloads keyed by order_uid.
    """

    def __init__(self, config: Dict[str, Any], topic: str, producer: Optional[Producer] = None):
        self.topic = topic
        self._producer = producer or Producer(config)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "OrderProducer":
        settings = settings or get_settings()
        return cls(config=settings.kafka_producer_config, topic=settings.KAFKA_TOPIC)

    def send(self, key: str, value: bytes, timeout: float = 10.0) -> None:
        """
        Produce one message and wait for its delivery report.

        Args:
            key: Message key (order_uid)
            value: Serialized order
            timeout: Seconds to wait for delivery

        Raises:
            QueueUnavailableException: If the message was not delivered
        """
        delivery_errors = []

        def on_delivery(err, msg):
            if err is not None:
                delivery_errors.append(err)

        try:
            self._producer.produce(self.topic, key=key.encode("utf-8"), value=value, on_delivery=on_delivery)
            pending = self._producer.flush(timeout)
        except (KafkaException, BufferError) as e:
            raise QueueUnavailableException(
                message=f"Failed to produce {key}: {e}", topic=self.topic, operation="produce"
            ) from e

        if delivery_errors:
            raise QueueUnavailableException(
                message=f"Delivery failed for {key}: {delivery_errors[0]}", topic=self.topic, operation="produce"
            )
        if pending:
            raise QueueUnavailableException(
                message=f"Delivery of {key} timed out after {timeout}s", topic=self.topic, operation="produce"
            )

    def close(self, timeout: float = 10.0) -> None:
        self._producer.flush(timeout)
