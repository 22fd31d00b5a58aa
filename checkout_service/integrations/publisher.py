"""
Downstream publishers for checkout status notifications.

Two interchangeable implementations:
- SqsCheckoutEventPublisher: sends the event to an outbound queue
- InProcessEventBus: hands the event to subscribers in the same process
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

import structlog

from checkout_service.config import Settings, get_settings
from checkout_service.domain.events import CheckoutUpdatedEvent
from checkout_service.integrations.sqs_client import SqsClient
from checkout_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

EventHandler = Callable[[CheckoutUpdatedEvent], Awaitable[Any]]


class CheckoutEventPublisher(ABC):
    """Publishes CheckoutUpdatedEvent instances downstream."""

    name = "publisher"

    @abstractmethod
    async def publish(self, event: CheckoutUpdatedEvent) -> None:
        """
        Publish an event.

        Failures propagate to the caller.
        """


class SqsCheckoutEventPublisher(CheckoutEventPublisher):
    """Publishes checkout events to a queue keyed by ``checkout-<orderId>``."""

    name = "sqs"

    def __init__(self, sqs_client: SqsClient, queue_url: str):
        self.sqs_client = sqs_client
        self.queue_url = queue_url

    async def publish(self, event: CheckoutUpdatedEvent) -> None:
        try:
            message_id = await self.sqs_client.send_message(
                self.queue_url,
                event.to_message_body(),
                message_key=event.message_key,
            )
        except Exception as e:
            metrics.record_notification(self.name, "failed")
            logger.error(
                "checkout_event_publish_failed",
                order_id=event.order_id,
                checkout_status=event.checkout_status.value,
                error=str(e),
            )
            raise

        metrics.record_notification(self.name, "published")
        logger.info(
            "checkout_event_published",
            order_id=event.order_id,
            checkout_status=event.checkout_status.value,
            message_id=message_id,
            message_key=event.message_key,
        )


class InProcessEventBus(CheckoutEventPublisher):
    """
    Minimal in-process event bus.

    Subscribers are awaited in registration order; the first failure
    propagates and stops delivery to the remaining subscribers.
    """

    name = "event_bus"

    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)
        logger.info(
            "event_bus_handler_subscribed",
            handler=getattr(handler, "__name__", repr(handler)),
        )

    async def publish(self, event: CheckoutUpdatedEvent) -> None:
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception as e:
                metrics.record_notification(self.name, "failed")
                logger.error(
                    "event_bus_handler_failed",
                    order_id=event.order_id,
                    error=str(e),
                )
                raise

        metrics.record_notification(self.name, "published")
        logger.info(
            "checkout_event_dispatched",
            order_id=event.order_id,
            checkout_status=event.checkout_status.value,
            subscribers=len(self._handlers),
        )


def build_publisher(
    sqs_client: Optional[SqsClient] = None, settings: Optional[Settings] = None
) -> CheckoutEventPublisher:
    """Build the publisher selected by ``checkout_events_publisher``."""
    settings = settings or get_settings()
    if settings.checkout_events_publisher == "event_bus":
        return InProcessEventBus()
    return SqsCheckoutEventPublisher(
        sqs_client=sqs_client or SqsClient(settings),
        queue_url=settings.payment_completed_queue_url,
    )
