"""
Order domain model (Aggregate Root).

Represents an order with its delivery, payment and line items exactly as it
travels on the queue, in the cache and through the HTTP read API.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# Rangos de las columnas BIGINT e INTEGER del almacenamiento
BIGINT_MAX = 2**63 - 1
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1


class Delivery(BaseModel):
    """
    Datos de entrega del pedido (uno a uno con Order).

    Nunca existe de forma independiente: se crea junto con el pedido.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., max_length=255, description="Nombre del destinatario")
    phone: str = Field(..., max_length=32, description="Teléfono de contacto")
    zip: str = Field("", max_length=32, description="Código postal")
    city: str = Field(..., max_length=255, description="Ciudad")
    address: str = Field(..., max_length=512, description="Dirección")
    region: str = Field("", max_length=255, description="Región")
    email: str = Field(..., max_length=255, description="Email de contacto")


class Payment(BaseModel):
    """
    Pago del pedido (uno a uno con Order).

    Identificado por su propio ``transaction``, distinto del ``order_uid``.
    """

    model_config = ConfigDict(extra="ignore")

    transaction: str = Field(..., max_length=255, description="ID de transacción (único)")
    request_id: str = Field("", max_length=255)
    currency: str = Field(..., max_length=8, description="Código ISO de moneda")
    provider: str = Field(..., max_length=255, description="Proveedor de pagos")
    amount: int = Field(..., ge=0, le=BIGINT_MAX, description="Monto total")
    payment_dt: int = Field(..., ge=0, le=BIGINT_MAX, description="Fecha de pago (unix seconds)")
    bank: str = Field("", max_length=255)
    delivery_cost: int = Field(0, ge=0, le=BIGINT_MAX)
    goods_total: int = Field(0, ge=0, le=BIGINT_MAX)
    custom_fee: int = Field(0, ge=0, le=BIGINT_MAX)


class Item(BaseModel):
    """Línea de pedido (uno a muchos con Order)."""

    model_config = ConfigDict(extra="ignore")

    chrt_id: int = Field(..., ge=0, le=BIGINT_MAX, description="ID de catálogo")
    track_number: str = Field(..., max_length=255)
    price: int = Field(..., ge=0, le=BIGINT_MAX)
    rid: str = Field(..., max_length=255)
    name: str = Field(..., max_length=255)
    sale: int = Field(0, ge=0, le=BIGINT_MAX)
    size: str = Field("", max_length=64)
    total_price: int = Field(..., ge=0, le=BIGINT_MAX)
    nm_id: int = Field(..., ge=0, le=BIGINT_MAX)
    brand: str = Field("", max_length=255)
    status: int = Field(..., ge=INT_MIN, le=INT_MAX, description="Código de estado")


class Order(BaseModel):
    """
    Domain model representing an order (Aggregate Root).

    The order is immutable once persisted: there is no update or delete path,
    a second ingestion of the same ``order_uid`` is a no-op.

    Attributes:
        order_uid: Globally unique order identifier
        track_number: Track number
        entry: Entry point code
        delivery: Mandatory delivery companion
        payment: Mandatory payment companion
        items: Line items, possibly empty, in insertion order
        locale: Customer locale
        internal_signature: Internal signature (may be empty)
        customer_id: Customer identifier
        delivery_service: Delivery service name
        shardkey: Shard key
        sm_id: Service metadata id
        date_created: Creation timestamp
        oof_shard: Out-of-flow shard
    """

    model_config = ConfigDict(extra="ignore")

    order_uid: str = Field(..., max_length=255)
    track_number: str = Field(..., max_length=255)
    entry: str = Field(..., max_length=255)
    delivery: Delivery
    payment: Payment
    items: list[Item] = Field(default_factory=list)
    locale: str = Field("", max_length=16)
    internal_signature: str = Field("", max_length=255)
    customer_id: str = Field(..., max_length=255)
    delivery_service: str = Field("", max_length=255)
    shardkey: str = Field("", max_length=32)
    sm_id: int = Field(0, ge=0, le=INT_MAX)
    date_created: datetime
    oof_shard: str = Field("", max_length=32)

    @property
    def items_count(self) -> int:
        """Get total number of line items."""
        return len(self.items)
