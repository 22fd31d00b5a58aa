"""Checkout domain: aggregate, lifecycle rules, messages and errors."""
from .checkout import Checkout, CheckoutStatus, resolve_status
from .events import (
    CheckoutUpdatedEvent,
    OrderCreatedEvent,
    PaymentNotification,
    decode_order_created,
    decode_payment_notification,
)
from .exceptions import (
    CheckoutError,
    InvalidStatusTransitionError,
    MessageDecodeError,
    NotFoundError,
    UpdateFailedError,
)

__all__ = [
    "Checkout",
    "CheckoutStatus",
    "resolve_status",
    "CheckoutUpdatedEvent",
    "OrderCreatedEvent",
    "PaymentNotification",
    "decode_order_created",
    "decode_payment_notification",
    "CheckoutError",
    "InvalidStatusTransitionError",
    "MessageDecodeError",
    "NotFoundError",
    "UpdateFailedError",
]
