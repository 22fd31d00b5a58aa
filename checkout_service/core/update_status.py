"""
Checkout status updates driven by gateway payment notifications.

Flow:
1. Look the payment up at the gateway
2. Resolve the checkout of the payment's order
3. Map the payment status and apply it
4. Persist and notify downstream
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from checkout_service.database.repository import CheckoutStore
from checkout_service.domain.checkout import Checkout, resolve_status
from checkout_service.domain.events import (
    PAYMENT_UPDATED_ACTION,
    CheckoutUpdatedEvent,
    decode_payment_notification,
)
from checkout_service.domain.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    UpdateFailedError,
)
from checkout_service.integrations.payment_gateway import PaymentGateway
from checkout_service.integrations.publisher import CheckoutEventPublisher
from checkout_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class UpdateOutcome(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    IGNORED = "ignored"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class UpdateCheckoutStatusOutput:
    outcome: UpdateOutcome
    checkout: Optional[Checkout] = None


class UpdateCheckoutStatusHandler:
    """Applies the gateway's current payment status to its checkout."""

    def __init__(
        self,
        gateway: PaymentGateway,
        store: CheckoutStore,
        publisher: CheckoutEventPublisher,
    ):
        self.gateway = gateway
        self.store = store
        self.publisher = publisher

    async def execute(self, payment_id: str) -> UpdateCheckoutStatusOutput:
        """
        Synchronize a checkout with its payment.

        Args:
            payment_id: Gateway payment id

        Returns:
            UpdateCheckoutStatusOutput: Outcome and the persisted checkout

        Raises:
            NotFoundError: If the payment or its checkout cannot be found
            UpdateFailedError: If the store could not confirm the update
            InvalidStatusTransitionError: If the checkout is already in
                another terminal state
            GatewayError: If the gateway lookup fails
        """
        log = logger.bind(payment_id=payment_id)

        payment = await self.gateway.get_by_args(payment_id)
        if payment is None:
            log.warning("payment_not_found")
            raise NotFoundError("Payment")

        checkout = await self.store.get_by_order_id(payment.order_id)
        if checkout is None:
            log.warning("checkout_not_found", order_id=payment.order_id)
            raise NotFoundError("Checkout")

        log = log.bind(order_id=checkout.order_id, checkout_id=checkout.id)

        new_status = resolve_status(payment.status)
        if new_status is None:
            log.info(
                "checkout_status_unchanged",
                payment_status=payment.status,
                checkout_status=checkout.status.value,
            )
            return UpdateCheckoutStatusOutput(UpdateOutcome.UNCHANGED, checkout)

        checkout.apply_status(new_status)

        updated = await self.store.update(checkout.id, checkout.changes())
        if updated is None:
            log.error("checkout_update_failed")
            raise UpdateFailedError("Checkout", checkout.id)

        metrics.record_status_transition(updated.status.value)
        log.info("checkout_status_updated", status=updated.status.value)

        await self.publisher.publish(
            CheckoutUpdatedEvent(order_id=updated.order_id, checkout_status=updated.status)
        )

        return UpdateCheckoutStatusOutput(UpdateOutcome.UPDATED, updated)


class PaymentNotificationDispatcher:
    """Routes gateway notifications; only payment updates reach the handler."""

    def __init__(self, handler: UpdateCheckoutStatusHandler):
        self.handler = handler

    async def dispatch(self, action: str, payment_id: str) -> UpdateCheckoutStatusOutput:
        if action != PAYMENT_UPDATED_ACTION:
            logger.info(
                "payment_notification_ignored",
                action=action,
                payment_id=payment_id,
            )
            return UpdateCheckoutStatusOutput(UpdateOutcome.IGNORED)

        return await self.handler.execute(payment_id)

    async def handle_message(self, body: str) -> UpdateCheckoutStatusOutput:
        """
        Handle a notification queue message body.

        A conflicting terminal transition returns CONFLICT instead of
        raising, so the message is acknowledged.

        Raises:
            MessageDecodeError: If the body is malformed
        """
        notification = decode_payment_notification(body)
        try:
            return await self.dispatch(notification.action, notification.data.id)
        except InvalidStatusTransitionError as e:
            logger.warning(
                "payment_notification_conflict",
                payment_id=notification.data.id,
                checkout_status=e.current,
                requested_status=e.requested,
            )
            return UpdateCheckoutStatusOutput(UpdateOutcome.CONFLICT)
