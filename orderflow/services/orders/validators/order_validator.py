"""
OrderValidator service for validating decoded orders before persistence.

Structural checks (types, required keys, non-negative amounts) already
happen while decoding into the pydantic model; this service enforces the
business and format rules a well-formed message can still violate.
"""

import logging
import re

from orderflow.domain.models import Order
from orderflow.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


class OrderValidator:
    """
    Validates orders consumed from the queue.

    Responsibilities:
    - Validate required non-blank identifiers
    - Validate delivery contact formats
    - Validate payment data
    - Validate line items
    """

    def validate(self, order: Order) -> Order:
        """
        Validates an order and returns it unchanged.

        Args:
            order: Decoded order

        Returns:
            Order: The same order if valid

        Raises:
            ValidationException: If validation fails
        """
        self._validate_required_fields(order)
        self._validate_delivery(order)
        self._validate_payment(order)
        self._validate_items(order)

        logger.debug(f"Order {order.order_uid} validation passed successfully")
        return order

    def _validate_required_fields(self, order: Order) -> None:
        """
        Validates that identifying fields are present and not blank.

        Raises:
            ValidationException: If any required field is blank
        """
        required_fields = ["order_uid", "track_number", "entry", "customer_id"]

        for field in required_fields:
            value = getattr(order, field)
            if not value or not value.strip():
                raise ValidationException(
                    message=f"Missing required field: {field}",
                    field=field,
                    invalid_value=value,
                )

    def _validate_delivery(self, order: Order) -> None:
        delivery = order.delivery

        for field in ("name", "city", "address"):
            value = getattr(delivery, field)
            if not value.strip():
                raise ValidationException(
                    message=f"Missing required field: delivery.{field}",
                    field=f"delivery.{field}",
                    invalid_value=value,
                )

        if not EMAIL_PATTERN.match(delivery.email):
            raise ValidationException(
                message="Invalid delivery email",
                field="delivery.email",
                invalid_value=delivery.email,
                expected_format="user@domain.tld",
            )

        if not PHONE_PATTERN.match(delivery.phone):
            raise ValidationException(
                message="Invalid delivery phone",
                field="delivery.phone",
                invalid_value=delivery.phone,
                expected_format="+ followed by 7-15 digits",
            )

    def _validate_payment(self, order: Order) -> None:
        """
        Validates payment identifiers and formats.

        Raises:
            ValidationException: If payment data is invalid
        """
        payment = order.payment

        if not payment.transaction.strip():
            raise ValidationException(
                message="Missing required field: payment.transaction",
                field="payment.transaction",
                invalid_value=payment.transaction,
            )

        if not payment.provider.strip():
            raise ValidationException(
                message="Missing required field: payment.provider",
                field="payment.provider",
                invalid_value=payment.provider,
            )

        if not CURRENCY_PATTERN.match(payment.currency):
            raise ValidationException(
                message="Invalid payment currency",
                field="payment.currency",
                invalid_value=payment.currency,
                expected_format="ISO 4217 code (e.g. USD)",
            )

        if payment.payment_dt <= 0:
            raise ValidationException(
                message="Payment timestamp must be positive",
                field="payment.payment_dt",
                invalid_value=payment.payment_dt,
            )

    def _validate_items(self, order: Order) -> None:
        # Items may be empty; only the ones present are checked
        for i, item in enumerate(order.items):
            if not item.name.strip():
                raise ValidationException(
                    message=f"Item {i + 1} has no name",
                    field=f"items[{i}].name",
                    invalid_value=item.name,
                )
            if not item.rid.strip():
                raise ValidationException(
                    message=f"Item {i + 1} has no rid",
                    field=f"items[{i}].rid",
                    invalid_value=item.rid,
                )
