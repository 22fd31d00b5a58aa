"""Checkout core: order ingestion, status updates and queries."""
from .listener import QueueListener
from .order_created import OrderCreatedHandler
from .queries import get_checkout_by_order_id, get_checkouts
from .update_status import (
    PaymentNotificationDispatcher,
    UpdateCheckoutStatusHandler,
    UpdateCheckoutStatusOutput,
    UpdateOutcome,
)

__all__ = [
    "QueueListener",
    "OrderCreatedHandler",
    "get_checkout_by_order_id",
    "get_checkouts",
    "PaymentNotificationDispatcher",
    "UpdateCheckoutStatusHandler",
    "UpdateCheckoutStatusOutput",
    "UpdateOutcome",
]
