"""
Tests for checkout status updates and notification dispatch.
"""
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict
from unittest.mock import AsyncMock

import pytest

from checkout_service.core.listener import QueueListener
from checkout_service.core.update_status import (
    PaymentNotificationDispatcher,
    UpdateCheckoutStatusHandler,
    UpdateOutcome,
)
from checkout_service.database.repository import CheckoutRepository
from checkout_service.domain.checkout import Checkout, CheckoutStatus
from checkout_service.domain.events import CheckoutUpdatedEvent
from checkout_service.domain.exceptions import (
    InvalidStatusTransitionError,
    MessageDecodeError,
    NotFoundError,
    UpdateFailedError,
)
from checkout_service.integrations.payment_gateway import PaymentRecord
from checkout_service.integrations.publisher import InProcessEventBus
from checkout_service.integrations.sqs_client import QueueMessage, SqsClient

NOTIFICATION_QUEUE = "https://sqs.us-east-1.amazonaws.com/000000000000/payment-notification"


def _payment(status: str) -> PaymentRecord:
    return PaymentRecord(id="456", order_id="123", status=status)


@pytest.fixture
def handler(
    mock_gateway: AsyncMock, mock_store: AsyncMock, mock_publisher: AsyncMock
) -> UpdateCheckoutStatusHandler:
    return UpdateCheckoutStatusHandler(
        gateway=mock_gateway, store=mock_store, publisher=mock_publisher
    )


def _echo_update(checkout: Checkout) -> Callable[[int, Dict[str, Any]], Awaitable[Checkout]]:
    async def update(checkout_id: int, fields: Dict[str, Any]) -> Checkout:
        return replace(checkout, id=checkout_id, status=CheckoutStatus(fields["status"]))

    return update


class TestUpdateCheckoutStatus:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_approved_payment_marks_checkout_paid_and_notifies(
        self,
        mock_gateway: AsyncMock,
        checkout_repository: CheckoutRepository,
    ) -> None:
        await checkout_repository.create(Checkout.create_instance("123", "456", "QRCODE123"))
        mock_gateway.get_by_args.return_value = _payment("approved")
        received = []

        async def on_checkout_updated(event: CheckoutUpdatedEvent) -> None:
            received.append(event)

        bus = InProcessEventBus()
        bus.subscribe(on_checkout_updated)
        handler = UpdateCheckoutStatusHandler(
            gateway=mock_gateway, store=checkout_repository, publisher=bus
        )

        result = await handler.execute("456")

        assert result.outcome is UpdateOutcome.UPDATED
        assert result.checkout is not None
        assert result.checkout.status is CheckoutStatus.PAID
        persisted = await checkout_repository.get_by_order_id("123")
        assert persisted is not None
        assert persisted.status is CheckoutStatus.PAID

        assert len(received) == 1
        assert received[0].order_id == "123"
        assert received[0].checkout_status is CheckoutStatus.PAID
        assert received[0].message_key == "checkout-123"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejected_payment_marks_checkout_refused(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        mock_gateway.get_by_args.return_value = _payment("rejected")
        mock_store.get_by_order_id.return_value = waiting_checkout
        mock_store.update.side_effect = _echo_update(waiting_checkout)

        result = await handler.execute("456")

        assert result.outcome is UpdateOutcome.UPDATED
        mock_store.update.assert_awaited_once_with(
            1, {"payment_id": "456", "payment_code": "QRCODE123", "status": "Refused"}
        )
        mock_publisher.publish.assert_awaited_once_with(
            CheckoutUpdatedEvent(order_id="123", checkout_status=CheckoutStatus.REFUSED)
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_payment_raises_not_found(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
    ) -> None:
        mock_gateway.get_by_args.return_value = None

        with pytest.raises(NotFoundError, match="Payment not found"):
            await handler.execute("missing")

        mock_store.get_by_order_id.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_checkout_raises_not_found(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
    ) -> None:
        mock_gateway.get_by_args.return_value = _payment("approved")
        mock_store.get_by_order_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await handler.execute("456")

        assert exc_info.value.entity == "Checkout"
        mock_store.update.assert_not_awaited()
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pending_payment_is_a_no_op(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        mock_gateway.get_by_args.return_value = _payment("pending")
        mock_store.get_by_order_id.return_value = waiting_checkout

        result = await handler.execute("456")

        assert result.outcome is UpdateOutcome.UNCHANGED
        assert result.checkout is waiting_checkout
        assert waiting_checkout.status is CheckoutStatus.WAITING_PAYMENT
        mock_store.update.assert_not_awaited()
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_without_result_raises_update_failed(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        mock_gateway.get_by_args.return_value = _payment("approved")
        mock_store.get_by_order_id.return_value = waiting_checkout
        mock_store.update.return_value = None

        with pytest.raises(UpdateFailedError) as exc_info:
            await handler.execute("456")

        assert exc_info.value.entity_id == 1
        mock_store.update.assert_awaited_once()
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_repeated_approval_goes_through_full_update(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        paid = replace(waiting_checkout, status=CheckoutStatus.PAID)
        mock_gateway.get_by_args.return_value = _payment("approved")
        mock_store.get_by_order_id.return_value = paid
        mock_store.update.side_effect = _echo_update(paid)

        result = await handler.execute("456")

        assert result.outcome is UpdateOutcome.UPDATED
        mock_store.update.assert_awaited_once()
        mock_publisher.publish.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_conflicting_terminal_status_raises(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        paid = replace(waiting_checkout, status=CheckoutStatus.PAID)
        mock_gateway.get_by_args.return_value = _payment("rejected")
        mock_store.get_by_order_id.return_value = paid

        with pytest.raises(InvalidStatusTransitionError):
            await handler.execute("456")

        mock_store.update.assert_not_awaited()
        mock_publisher.publish.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publish_failure_propagates_after_update(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        mock_gateway.get_by_args.return_value = _payment("approved")
        mock_store.get_by_order_id.return_value = waiting_checkout
        mock_store.update.side_effect = _echo_update(waiting_checkout)
        mock_publisher.publish.side_effect = RuntimeError("queue unavailable")

        with pytest.raises(RuntimeError):
            await handler.execute("456")

        mock_store.update.assert_awaited_once()


class TestPaymentNotificationDispatcher:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payment_updated_runs_handler(self) -> None:
        handler = AsyncMock(spec=UpdateCheckoutStatusHandler)
        dispatcher = PaymentNotificationDispatcher(handler)

        await dispatcher.dispatch("payment.updated", "456")

        handler.execute.assert_awaited_once_with("456")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_other_actions_are_ignored(self) -> None:
        handler = AsyncMock(spec=UpdateCheckoutStatusHandler)
        dispatcher = PaymentNotificationDispatcher(handler)

        result = await dispatcher.dispatch("payment.created", "456")

        assert result.outcome is UpdateOutcome.IGNORED
        assert result.checkout is None
        handler.execute.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_handle_message_decodes_body(self) -> None:
        handler = AsyncMock(spec=UpdateCheckoutStatusHandler)
        dispatcher = PaymentNotificationDispatcher(handler)

        await dispatcher.handle_message('{"action": "payment.updated", "data": {"id": 456}}')

        handler.execute.assert_awaited_once_with("456")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_handle_message_rejects_malformed_body(self) -> None:
        dispatcher = PaymentNotificationDispatcher(AsyncMock(spec=UpdateCheckoutStatusHandler))

        with pytest.raises(MessageDecodeError):
            await dispatcher.handle_message('{"action": "payment.updated"}')

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_handle_message_reports_conflicting_transition(self) -> None:
        handler = AsyncMock(spec=UpdateCheckoutStatusHandler)
        handler.execute.side_effect = InvalidStatusTransitionError("Paid", "Refused")
        dispatcher = PaymentNotificationDispatcher(handler)

        result = await dispatcher.handle_message(
            '{"action": "payment.updated", "data": {"id": "456"}}'
        )

        assert result.outcome is UpdateOutcome.CONFLICT
        assert result.checkout is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dispatch_still_raises_conflicting_transition(self) -> None:
        handler = AsyncMock(spec=UpdateCheckoutStatusHandler)
        handler.execute.side_effect = InvalidStatusTransitionError("Paid", "Refused")
        dispatcher = PaymentNotificationDispatcher(handler)

        with pytest.raises(InvalidStatusTransitionError):
            await dispatcher.dispatch("payment.updated", "456")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_conflicting_notification_is_acknowledged_on_queue(
        self,
        handler: UpdateCheckoutStatusHandler,
        mock_gateway: AsyncMock,
        mock_store: AsyncMock,
        mock_publisher: AsyncMock,
        waiting_checkout: Checkout,
    ) -> None:
        mock_gateway.get_by_args.return_value = _payment("rejected")
        mock_store.get_by_order_id.return_value = replace(
            waiting_checkout, status=CheckoutStatus.PAID
        )
        sqs_client = AsyncMock(spec=SqsClient)
        sqs_client.receive_messages.return_value = [
            QueueMessage(
                id="m-1",
                body='{"action": "payment.updated", "data": {"id": "456"}}',
                receipt_handle="rh-1",
            )
        ]
        listener = QueueListener(
            queue_url=NOTIFICATION_QUEUE,
            sqs_client=sqs_client,
            message_handler=PaymentNotificationDispatcher(handler).handle_message,
            name="payment_notification",
        )

        assert await listener.poll_once() == 1
        sqs_client.delete_message.assert_awaited_once_with(NOTIFICATION_QUEUE, "rh-1")
        mock_store.update.assert_not_awaited()
        mock_publisher.publish.assert_not_awaited()
