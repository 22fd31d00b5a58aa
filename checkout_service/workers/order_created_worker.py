"""
Queue ingestion background worker.

Drains the order-created queue, and the payment notification queue when one
is configured, until a shutdown signal arrives.
"""
import asyncio
import signal
from typing import List, Optional

import structlog

from checkout_service.config import Settings, get_settings
from checkout_service.core.listener import QueueListener
from checkout_service.core.order_created import OrderCreatedHandler
from checkout_service.core.update_status import (
    PaymentNotificationDispatcher,
    UpdateCheckoutStatusHandler,
)
from checkout_service.database.connection import close_db, init_db
from checkout_service.database.repository import CheckoutRepository, CheckoutStore
from checkout_service.integrations.payment_gateway import PaymentGateway, StripePaymentGateway
from checkout_service.integrations.publisher import CheckoutEventPublisher, build_publisher
from checkout_service.integrations.sqs_client import SqsClient
from checkout_service.monitoring.logging import setup_logging

logger = structlog.get_logger(__name__)


def build_queue_listeners(
    sqs_client: SqsClient,
    store: CheckoutStore,
    gateway: PaymentGateway,
    publisher: CheckoutEventPublisher,
    settings: Optional[Settings] = None,
) -> List[QueueListener]:
    """
    Wire the queue listeners for the configured queues.

    Returns:
        List[QueueListener]: Order-created listener, followed by the
        payment notification listener when its queue is configured
    """
    settings = settings or get_settings()

    listeners = [
        QueueListener(
            queue_url=settings.order_created_queue_url,
            sqs_client=sqs_client,
            message_handler=OrderCreatedHandler(gateway=gateway, store=store).handle_message,
            poll_interval_seconds=settings.message_receive_interval_seconds,
            max_messages=settings.sqs_max_messages,
            name="order_created",
        )
    ]

    if settings.payment_notification_queue_url:
        dispatcher = PaymentNotificationDispatcher(
            UpdateCheckoutStatusHandler(gateway=gateway, store=store, publisher=publisher)
        )
        listeners.append(
            QueueListener(
                queue_url=settings.payment_notification_queue_url,
                sqs_client=sqs_client,
                message_handler=dispatcher.handle_message,
                poll_interval_seconds=settings.message_receive_interval_seconds,
                max_messages=settings.sqs_max_messages,
                name="payment_notification",
            )
        )

    return listeners


async def start_order_created_worker() -> None:
    """
    Start the ingestion worker.

    Runs until SIGINT/SIGTERM, then lets in-flight cycles finish.
    """
    setup_logging()
    settings = get_settings()

    logger.info("order_created_worker_starting", queue_url=settings.order_created_queue_url)

    await init_db()

    sqs_client = SqsClient(settings)
    listeners = build_queue_listeners(
        sqs_client=sqs_client,
        store=CheckoutRepository(),
        gateway=StripePaymentGateway(settings),
        publisher=build_publisher(sqs_client, settings),
        settings=settings,
    )

    def shutdown(sig: signal.Signals) -> None:
        logger.info("order_created_worker_shutdown_signal_received", signal=sig.name)
        for listener in listeners:
            listener.stop()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown, sig)

    try:
        await asyncio.gather(*(listener.start() for listener in listeners))
    except Exception as e:
        logger.error("order_created_worker_error", error=str(e))
        raise
    finally:
        await close_db()
        logger.info("order_created_worker_stopped")


def main() -> None:
    asyncio.run(start_order_created_worker())


if __name__ == "__main__":
    main()
