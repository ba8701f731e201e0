"""
SQLOrderRepository: persistence of the order aggregate.

Writes the order, its delivery, its payment and every item in a single
transaction guarded by a conditional insert on ``order_uid``; reads
reconstruct the full aggregate with items in insertion order.
"""

import functools
import logging
from datetime import timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from orderflow.db.connection import ConnDB
from orderflow.domain.models import Delivery, Item, Order, Payment
from orderflow.utils.error_handler import OrderNotFoundException, StoreUnavailableException

logger = logging.getLogger(__name__)


def log_operation(operation_name: Optional[str] = None) -> Callable:
    """
    Decorator for logging database operations.

    Args:
        operation_name: Optional custom name for the operation

    Returns:
        Decorated function with logging
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            op_name = operation_name or f"{self.__class__.__name__}.{func.__name__}"
            logger.debug(f"Starting operation: {op_name}")

            try:
                result = await func(self, *args, **kwargs)
                logger.debug(f"Operation successful: {op_name}")
                return result
            except OrderNotFoundException:
                raise
            except Exception as e:
                logger.error(f"Operation failed: {op_name} - {e}")
                raise

        return wrapper

    return decorator


INSERT_ORDER = text(
    """
    INSERT INTO orders (
        order_uid, track_number, entry, locale, internal_signature,
        customer_id, delivery_service, shardkey, sm_id, date_created, oof_shard
    ) VALUES (
        :order_uid, :track_number, :entry, :locale, :internal_signature,
        :customer_id, :delivery_service, :shardkey, :sm_id, :date_created, :oof_shard
    )
    ON CONFLICT (order_uid) DO NOTHING
    """
).bindparams(bindparam("date_created", type_=DateTime(timezone=True)))

INSERT_DELIVERY = text(
    """
    INSERT INTO delivery (order_uid, name, phone, zip, city, address, region, email)
    VALUES (:order_uid, :name, :phone, :zip, :city, :address, :region, :email)
    """
)

INSERT_PAYMENT = text(
    """
    INSERT INTO payment (
        order_uid, "transaction", request_id, currency, provider, amount,
        payment_dt, bank, delivery_cost, goods_total, custom_fee
    ) VALUES (
        :order_uid, :transaction, :request_id, :currency, :provider, :amount,
        :payment_dt, :bank, :delivery_cost, :goods_total, :custom_fee
    )
    """
)

INSERT_ITEM = text(
    """
    INSERT INTO items (
        order_uid, position, chrt_id, track_number, price, rid, name,
        sale, size, total_price, nm_id, brand, status
    ) VALUES (
        :order_uid, :position, :chrt_id, :track_number, :price, :rid, :name,
        :sale, :size, :total_price, :nm_id, :brand, :status
    )
    """
)

SELECT_ORDER = text(
    """
    SELECT
        o.order_uid, o.track_number, o.entry, o.locale, o.internal_signature,
        o.customer_id, o.delivery_service, o.shardkey, o.sm_id, o.date_created, o.oof_shard,
        d.name AS d_name, d.phone AS d_phone, d.zip AS d_zip, d.city AS d_city,
        d.address AS d_address, d.region AS d_region, d.email AS d_email,
        p."transaction" AS p_transaction, p.request_id AS p_request_id,
        p.currency AS p_currency, p.provider AS p_provider, p.amount AS p_amount,
        p.payment_dt AS p_payment_dt, p.bank AS p_bank, p.delivery_cost AS p_delivery_cost,
        p.goods_total AS p_goods_total, p.custom_fee AS p_custom_fee
    FROM orders o
    JOIN delivery d ON d.order_uid = o.order_uid
    JOIN payment p ON p.order_uid = o.order_uid
    WHERE o.order_uid = :order_uid
    """
).columns(date_created=DateTime(timezone=True))

SELECT_ITEMS = text(
    """
    SELECT chrt_id, track_number, price, rid, name, sale, size,
           total_price, nm_id, brand, status
    FROM items
    WHERE order_uid = :order_uid
    ORDER BY position
    """
)


class SQLOrderRepository:
    """Repository for the order aggregate (orders, delivery, payment, items)."""

    def __init__(self, conn_db: ConnDB):
        """
        Args:
            conn_db: Initialized database connection
        """
        self.conn_db = conn_db

    @log_operation("write_order")
    async def write_order(self, order: Order) -> None:
        """
        Persist the full aggregate in one transaction.

        A second write of an existing ``order_uid`` succeeds without touching
        the stored rows.

        Raises:
            StoreUnavailableException: On connectivity or transaction errors
        """
        try:
            async with self.conn_db.get_session() as session:
                async with session.begin():
                    result = await session.execute(INSERT_ORDER, self._order_params(order))

                    if result.rowcount == 0:
                        logger.info(f"Order {order.order_uid} already stored, skipping")
                        return

                    await session.execute(
                        INSERT_DELIVERY, {"order_uid": order.order_uid, **order.delivery.model_dump()}
                    )
                    await session.execute(
                        INSERT_PAYMENT, {"order_uid": order.order_uid, **order.payment.model_dump()}
                    )
                    if order.items:
                        await session.execute(
                            INSERT_ITEM,
                            [
                                {"order_uid": order.order_uid, "position": position, **item.model_dump()}
                                for position, item in enumerate(order.items)
                            ],
                        )

            logger.info(f"Order {order.order_uid} stored with {order.items_count} items")

        except StoreUnavailableException:
            raise
        except (SQLAlchemyError, OverflowError) as e:
            raise StoreUnavailableException(
                message=f"Failed to store order {order.order_uid}: {e}",
                db_host=self.conn_db.db_host,
                operation="write_order",
            ) from e

    @log_operation("read_order")
    async def read_order(self, order_uid: str) -> Order:
        """
        Load the full aggregate for an order.

        Raises:
            OrderNotFoundException: If no order has this identifier
            StoreUnavailableException: On connectivity errors
        """
        try:
            async with self.conn_db.get_session() as session:
                result = await session.execute(SELECT_ORDER, {"order_uid": order_uid})
                row = result.mappings().first()

                if row is None:
                    raise OrderNotFoundException(order_uid)

                items_result = await session.execute(SELECT_ITEMS, {"order_uid": order_uid})
                items = [Item.model_validate(dict(item_row)) for item_row in items_result.mappings()]

        except (OrderNotFoundException, StoreUnavailableException):
            raise
        except (SQLAlchemyError, OverflowError) as e:
            raise StoreUnavailableException(
                message=f"Failed to read order {order_uid}: {e}",
                db_host=self.conn_db.db_host,
                operation="read_order",
            ) from e

        return self._build_order(row, items)

    async def health_check(self) -> dict:
        return await self.conn_db.health_check()

    @staticmethod
    def _order_params(order: Order) -> Dict[str, Any]:
        return order.model_dump(exclude={"delivery", "payment", "items"})

    @staticmethod
    def _build_order(row, items) -> Order:
        prefixed: Dict[str, Dict[str, Any]] = {"d_": {}, "p_": {}}
        order_fields: Dict[str, Any] = {}

        for key, value in row.items():
            prefix = key[:2]
            if prefix in prefixed:
                prefixed[prefix][key[2:]] = value
            else:
                order_fields[key] = value

        # drivers without timezone support hand back naive UTC values
        date_created = order_fields.get("date_created")
        if date_created is not None and date_created.tzinfo is None:
            order_fields["date_created"] = date_created.replace(tzinfo=timezone.utc)

        return Order(
            **order_fields,
            delivery=Delivery.model_validate(prefixed["d_"]),
            payment=Payment.model_validate(prefixed["p_"]),
            items=items,
        )
