"""External integrations: payment gateway, queues and downstream publishers."""
from .payment_gateway import (
    GatewayError,
    GatewayErrorType,
    PaymentGateway,
    PaymentRecord,
    StripePaymentGateway,
)
from .publisher import (
    CheckoutEventPublisher,
    InProcessEventBus,
    SqsCheckoutEventPublisher,
    build_publisher,
)
from .sqs_client import QueueMessage, SqsClient

__all__ = [
    "GatewayError",
    "GatewayErrorType",
    "PaymentGateway",
    "PaymentRecord",
    "StripePaymentGateway",
    "CheckoutEventPublisher",
    "InProcessEventBus",
    "SqsCheckoutEventPublisher",
    "build_publisher",
    "QueueMessage",
    "SqsClient",
]
