"""
Table definitions for the order store.

One row per order in ``orders``; exactly one row each in ``delivery`` and
``payment``; zero or more rows in ``items`` kept in insertion order through
the ``position`` column.
"""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncEngine

metadata = MetaData()

orders_table = Table(
    "orders",
    metadata,
    Column("order_uid", String(255), primary_key=True),
    Column("track_number", String(255), nullable=False),
    Column("entry", String(255), nullable=False),
    Column("locale", String(16), nullable=False, default=""),
    Column("internal_signature", String(255), nullable=False, default=""),
    Column("customer_id", String(255), nullable=False),
    Column("delivery_service", String(255), nullable=False, default=""),
    Column("shardkey", String(32), nullable=False, default=""),
    Column("sm_id", Integer, nullable=False, default=0),
    Column("date_created", DateTime(timezone=True), nullable=False),
    Column("oof_shard", String(32), nullable=False, default=""),
)

delivery_table = Table(
    "delivery",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_uid", String(255), ForeignKey("orders.order_uid", ondelete="CASCADE"), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("phone", String(32), nullable=False),
    Column("zip", String(32), nullable=False),
    Column("city", String(255), nullable=False),
    Column("address", String(512), nullable=False),
    Column("region", String(255), nullable=False),
    Column("email", String(255), nullable=False),
)

payment_table = Table(
    "payment",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_uid", String(255), ForeignKey("orders.order_uid", ondelete="CASCADE"), nullable=False, unique=True),
    Column("transaction", String(255), nullable=False, unique=True),
    Column("request_id", String(255), nullable=False),
    Column("currency", String(8), nullable=False),
    Column("provider", String(255), nullable=False),
    Column("amount", BigInteger, nullable=False),
    Column("payment_dt", BigInteger, nullable=False),
    Column("bank", String(255), nullable=False),
    Column("delivery_cost", BigInteger, nullable=False),
    Column("goods_total", BigInteger, nullable=False),
    Column("custom_fee", BigInteger, nullable=False),
)

items_table = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_uid", String(255), ForeignKey("orders.order_uid", ondelete="CASCADE"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("chrt_id", BigInteger, nullable=False),
    Column("track_number", String(255), nullable=False),
    Column("price", BigInteger, nullable=False),
    Column("rid", String(255), nullable=False),
    Column("name", String(255), nullable=False),
    Column("sale", BigInteger, nullable=False),
    Column("size", String(64), nullable=False),
    Column("total_price", BigInteger, nullable=False),
    Column("nm_id", BigInteger, nullable=False),
    Column("brand", String(255), nullable=False),
    Column("status", Integer, nullable=False),
    UniqueConstraint("order_uid", "position", name="uq_items_order_position"),
)


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet (no migrations)."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
