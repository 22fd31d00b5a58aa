"""
Order-created handling.

Turns an order-created message into a gateway payment and a WaitingPayment
checkout.
"""
import structlog

from checkout_service.database.repository import CheckoutStore
from checkout_service.domain.checkout import Checkout
from checkout_service.domain.events import OrderCreatedEvent, decode_order_created
from checkout_service.integrations.payment_gateway import PaymentGateway
from checkout_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class OrderCreatedHandler:
    """
    Creates a payment and a checkout for each newly created order.

    Any failure propagates so the message stays on the queue and is
    redelivered.
    """

    def __init__(self, gateway: PaymentGateway, store: CheckoutStore):
        self.gateway = gateway
        self.store = store

    async def handle_message(self, body: str) -> Checkout:
        """
        Decode and handle a raw queue message body.

        Raises:
            MessageDecodeError: If the body is malformed
        """
        event = decode_order_created(body)
        return await self.handle(event)

    async def handle(self, event: OrderCreatedEvent) -> Checkout:
        """
        Create the payment and persist the checkout for an order.

        Args:
            event: Decoded order-created event

        Returns:
            Checkout: The persisted checkout
        """
        log = logger.bind(order_id=event.order_id, customer_id=event.customer_id)

        existing = await self.store.get_by_order_id(event.order_id)
        if existing is not None:
            log.info(
                "checkout_already_exists",
                checkout_id=existing.id,
                payment_id=existing.payment_id,
            )
            return existing

        payment = await self.gateway.create(
            order_id=event.order_id,
            customer_id=event.customer_id,
            amount=event.amount,
        )

        checkout = Checkout.create_instance(
            order_id=event.order_id,
            payment_id=payment.id,
            payment_code=payment.qr_code or "",
        )
        saved = await self.store.create(checkout)

        metrics.record_checkout_created()
        log.info(
            "checkout_created",
            checkout_id=saved.id,
            payment_id=saved.payment_id,
            status=saved.status.value,
        )
        return saved
