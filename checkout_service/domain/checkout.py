"""
Checkout aggregate and its status lifecycle.

State machine:
    WaitingPayment → Paid
          ↓
       Refused

Paid and Refused are terminal. Re-applying the current status is allowed
so that repeated gateway notifications stay harmless.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import structlog

from checkout_service.domain.exceptions import InvalidStatusTransitionError

logger = structlog.get_logger(__name__)


class CheckoutStatus(str, Enum):
    """Checkout lifecycle states."""

    WAITING_PAYMENT = "WaitingPayment"
    PAID = "Paid"
    REFUSED = "Refused"


# Gateway payment status -> checkout status. Anything else means "not yet".
STATUS_TRANSITIONS: dict[str, CheckoutStatus] = {
    "approved": CheckoutStatus.PAID,
    "rejected": CheckoutStatus.REFUSED,
}

ALLOWED_TRANSITIONS: dict[CheckoutStatus, frozenset[CheckoutStatus]] = {
    CheckoutStatus.WAITING_PAYMENT: frozenset(
        {CheckoutStatus.WAITING_PAYMENT, CheckoutStatus.PAID, CheckoutStatus.REFUSED}
    ),
    CheckoutStatus.PAID: frozenset({CheckoutStatus.PAID}),
    CheckoutStatus.REFUSED: frozenset({CheckoutStatus.REFUSED}),
}


def resolve_status(gateway_status: str) -> CheckoutStatus | None:
    """
    Map a gateway payment status onto a checkout status.

    Returns None for statuses with no transition (e.g. ``pending``).
    """
    return STATUS_TRANSITIONS.get(gateway_status)


@dataclass
class Checkout:
    """
    Checkout aggregate root.

    ``id``, ``created_at`` and ``updated_at`` are assigned by the store and
    are never set here.
    """

    order_id: str
    payment_id: str
    payment_code: str
    status: CheckoutStatus = CheckoutStatus.WAITING_PAYMENT
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create_instance(cls, order_id: str, payment_id: str, payment_code: str) -> Checkout:
        """
        Factory method: start tracking a freshly created payment.

        This is the only way to build a checkout in the WaitingPayment state.
        """
        if not payment_id:
            raise ValueError("payment_id is required to create a checkout")

        return cls(
            order_id=str(order_id),
            payment_id=str(payment_id),
            payment_code=payment_code,
            status=CheckoutStatus.WAITING_PAYMENT,
        )

    def apply_status(self, new_status: CheckoutStatus) -> None:
        """
        Move the checkout to ``new_status``.

        Same-status application is accepted and still counts as an update.

        Raises:
            InvalidStatusTransitionError: If the lifecycle forbids the edge
        """
        new_status = CheckoutStatus(new_status)
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(self.status.value, new_status.value)

        logger.debug(
            "checkout_status_applied",
            order_id=self.order_id,
            from_status=self.status.value,
            to_status=new_status.value,
        )
        self.status = new_status

    def changes(self) -> dict[str, Any]:
        """Fields handed to the store on update."""
        return {
            "payment_id": self.payment_id,
            "payment_code": self.payment_code,
            "status": self.status.value,
        }

    @property
    def is_terminal(self) -> bool:
        return self.status in (CheckoutStatus.PAID, CheckoutStatus.REFUSED)
