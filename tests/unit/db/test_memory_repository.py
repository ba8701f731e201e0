"""Tests unitarios para InMemoryOrderRepository."""

import pytest
from conftest import build_order

from orderflow.db.memory_repository import InMemoryOrderRepository
from orderflow.utils.error_handler import OrderNotFoundException, StoreUnavailableException


class TestInMemoryOrderRepository:
    @pytest.mark.asyncio
    async def test_write_then_read(self, sample_order):
        repo = InMemoryOrderRepository()

        await repo.write_order(sample_order)

        assert await repo.read_order(sample_order.order_uid) == sample_order

    @pytest.mark.asyncio
    async def test_duplicate_write_is_a_successful_noop(self, sample_order):
        repo = InMemoryOrderRepository()
        await repo.write_order(sample_order)

        changed = sample_order.model_copy(update={"track_number": "OTHER"})
        await repo.write_order(changed)

        assert len(repo) == 1
        assert (await repo.read_order(sample_order.order_uid)).track_number == "WBILMTESTTRACK"

    @pytest.mark.asyncio
    async def test_unknown_order(self):
        with pytest.raises(OrderNotFoundException):
            await InMemoryOrderRepository().read_order("ZZZ")

    @pytest.mark.asyncio
    async def test_payment_transaction_is_unique(self):
        repo = InMemoryOrderRepository()
        first = build_order("A1")
        second = build_order("A2", payment=first.payment)
        await repo.write_order(first)

        with pytest.raises(StoreUnavailableException):
            await repo.write_order(second)

        assert len(repo) == 1
