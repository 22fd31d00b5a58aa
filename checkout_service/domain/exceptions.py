"""Domain errors raised by the checkout core."""
from typing import Any


class CheckoutError(Exception):
    """Base exception for checkout processing errors."""

    pass


class NotFoundError(CheckoutError):
    """Raised when a payment or checkout cannot be resolved."""

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"{entity} not found")


class UpdateFailedError(CheckoutError):
    """
    Raised when a persisted update cannot be confirmed.

    The row existed moments before the update; this is a server-side fault
    and is never retried automatically.
    """

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Failed to update {entity} with id {entity_id}")


class MessageDecodeError(CheckoutError):
    """Raised when a queue message body cannot be decoded."""

    pass


class InvalidStatusTransitionError(CheckoutError):
    """Raised when a checkout is moved along an edge the lifecycle forbids."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move checkout from {current} to {requested}")
