"""
Messages flowing in and out of the checkout core.

Inbound:
- OrderCreatedEvent: body of an order-created queue message
- PaymentNotification: gateway webhook / notification queue payload

Outbound:
- CheckoutUpdatedEvent: emitted after a checkout status change
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from checkout_service.domain.checkout import CheckoutStatus
from checkout_service.domain.exceptions import MessageDecodeError

PAYMENT_UPDATED_ACTION = "payment.updated"


def _as_identifier(v: Any) -> Any:
    # Producers send numeric ids as JSON numbers; identifiers are opaque strings here.
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v)) if float(v).is_integer() else str(v)
    return v


class OrderCreatedEvent(BaseModel):
    """An order was placed and needs a payment."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    order_id: str = Field(..., alias="orderId", min_length=1)
    customer_id: str = Field(..., alias="customerId", min_length=1)
    amount: float = Field(..., alias="amount", ge=0)

    @field_validator("order_id", "customer_id", mode="before")
    @classmethod
    def normalise_identifier(cls, v: Any) -> Any:
        return _as_identifier(v)


class CheckoutUpdatedEvent(BaseModel):
    """A checkout reached a new status."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    order_id: str = Field(..., alias="orderId")
    checkout_status: CheckoutStatus = Field(..., alias="checkoutStatus")

    @property
    def message_key(self) -> str:
        """Partition / deduplication key for the outbound queue."""
        return f"checkout-{self.order_id}"

    def to_message_body(self) -> str:
        return self.model_dump_json(by_alias=True)


class PaymentNotificationData(BaseModel):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def normalise_identifier(cls, v: Any) -> Any:
        return _as_identifier(v)


class PaymentNotification(BaseModel):
    """Gateway notification: ``{"action": ..., "data": {"id": ...}}``."""

    model_config = ConfigDict(extra="ignore")

    action: str
    data: PaymentNotificationData

    @property
    def is_payment_update(self) -> bool:
        return self.action == PAYMENT_UPDATED_ACTION


def decode_order_created(body: str | bytes) -> OrderCreatedEvent:
    """
    Decode a queue message body into an OrderCreatedEvent.

    Raises:
        MessageDecodeError: If the body is not valid JSON or misses fields
    """
    try:
        return OrderCreatedEvent.model_validate_json(body)
    except ValidationError as e:
        raise MessageDecodeError(f"Invalid order-created message: {e}") from e


def decode_payment_notification(body: str | bytes) -> PaymentNotification:
    """
    Decode a notification queue message body.

    Raises:
        MessageDecodeError: If the body is not a valid notification
    """
    try:
        return PaymentNotification.model_validate_json(body)
    except ValidationError as e:
        raise MessageDecodeError(f"Invalid payment notification: {e}") from e
