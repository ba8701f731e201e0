"""
Interfaces/Protocols for order services (Dependency Inversion Principle).

These protocols define the contracts the orchestration layer and the
consumer depend on, so production adapters (PostgreSQL, Redis, Kafka) and
in-memory doubles are interchangeable.
"""

from typing import Optional, Protocol, TypeVar

from pydantic import BaseModel

from orderflow.domain.models import Order

ModelT = TypeVar("ModelT", bound=BaseModel)


class IOrderRepository(Protocol):
    """Protocol for the persistent order store."""

    async def write_order(self, order: Order) -> None:
        """Persist the full aggregate atomically; a duplicate order_uid is a successful no-op."""
        ...

    async def read_order(self, order_uid: str) -> Order:
        """Return the full aggregate or raise OrderNotFoundException."""
        ...


class IOrderCache(Protocol):
    """Protocol for the key/value cache with per-key expiry."""

    async def set(self, key: str, value: BaseModel, ttl: int) -> None:
        """Store value under key for ttl seconds."""
        ...

    async def get(self, key: str, model: type[ModelT]) -> ModelT:
        """Return the cached value or raise CacheMissException."""
        ...

    async def close(self) -> None:
        ...


class IQueueMessage(Protocol):
    """Minimal view of a consumed message."""

    def value(self) -> Optional[bytes]: ...

    def key(self) -> Optional[bytes]: ...

    def offset(self) -> int: ...


class IQueueClient(Protocol):
    """Protocol for the message queue client."""

    async def fetch(self) -> IQueueMessage:
        """Block until the next message is available."""
        ...

    async def commit(self, message: IQueueMessage) -> None:
        """Mark the message as processed for the consumer group."""
        ...

    async def close(self) -> None:
        ...
