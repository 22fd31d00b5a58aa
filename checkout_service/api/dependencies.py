"""
FastAPI dependency providers.

Collaborators are built once per process; tests swap them through
``app.dependency_overrides``.
"""
from functools import lru_cache

from fastapi import Depends

from checkout_service.core.update_status import (
    PaymentNotificationDispatcher,
    UpdateCheckoutStatusHandler,
)
from checkout_service.database.repository import CheckoutRepository, CheckoutStore
from checkout_service.integrations.payment_gateway import (
    PaymentGateway,
    StripePaymentGateway,
)
from checkout_service.integrations.publisher import CheckoutEventPublisher, build_publisher
from checkout_service.integrations.sqs_client import SqsClient
from checkout_service.monitoring.health import HealthCheck


@lru_cache()
def get_checkout_store() -> CheckoutStore:
    return CheckoutRepository()


@lru_cache()
def get_payment_gateway() -> PaymentGateway:
    return StripePaymentGateway()


@lru_cache()
def get_sqs_client() -> SqsClient:
    return SqsClient()


@lru_cache()
def get_event_publisher() -> CheckoutEventPublisher:
    return build_publisher(get_sqs_client())


@lru_cache()
def get_health_check() -> HealthCheck:
    return HealthCheck(sqs_client=get_sqs_client())


def get_notification_dispatcher(
    store: CheckoutStore = Depends(get_checkout_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    publisher: CheckoutEventPublisher = Depends(get_event_publisher),
) -> PaymentNotificationDispatcher:
    return PaymentNotificationDispatcher(
        UpdateCheckoutStatusHandler(gateway=gateway, store=store, publisher=publisher)
    )
