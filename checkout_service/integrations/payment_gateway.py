"""
Payment gateway client.

PaymentGateway is the contract the checkout core consumes. StripePaymentGateway
implements it with PIX payment intents:
- Payment creation is never retried here; the caller owns the retry policy
- Read-only lookups retry transient failures with exponential backoff
- Circuit breaker pattern around every SDK call
- Errors classified for callers and metrics
"""
import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Literal, Optional

import stripe
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from checkout_service.config import Settings, get_settings
from checkout_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

PaymentStatus = Literal["pending", "approved", "rejected"]


@dataclass(frozen=True)
class PaymentRecord:
    """Payment as reported by the gateway."""

    id: str
    order_id: str
    status: PaymentStatus
    qr_code: Optional[str] = None


class GatewayErrorType(Enum):
    """Classification of gateway errors for retry logic."""

    TRANSIENT = "transient"  # Retry these
    PERMANENT = "permanent"  # Don't retry these
    RATE_LIMIT = "rate_limit"  # Retry with longer backoff


class GatewayError(Exception):
    """Any failure reported by, or while reaching, the payment gateway."""

    def __init__(
        self,
        message: str,
        error_type: GatewayErrorType,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize gateway error.

        Args:
            message: Error message
            error_type: Classification of error
            original_error: Original SDK exception
        """
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error

    @property
    def is_retryable(self) -> bool:
        return self.error_type is not GatewayErrorType.PERMANENT


class PaymentGateway(ABC):
    """Payment gateway contract."""

    @abstractmethod
    async def create(self, order_id: str, customer_id: str, amount: float) -> PaymentRecord:
        """
        Create a payment for an order.

        Raises:
            GatewayError: On any transport or remote failure
        """

    @abstractmethod
    async def get_by_args(self, payment_id: str) -> Optional[PaymentRecord]:
        """
        Look a payment up by id. The QR payload is not returned.

        Returns:
            Optional[PaymentRecord]: None if the gateway does not know the id

        Raises:
            GatewayError: On any other failure
        """


class CircuitBreaker:
    """
    Circuit breaker for gateway calls.

    Prevents cascading failures by temporarily stopping requests
    when consecutive failures exceed a threshold.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 60,
        success_threshold: int = 2,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Seconds before attempting to close circuit
            success_threshold: Successful calls needed to close circuit
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = "closed"  # closed, open, half_open

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Execute function with circuit breaker protection.

        Raises:
            GatewayError: If circuit is open
        """
        if self.state == "open":
            if (
                self.last_failure_time
                and time.time() - self.last_failure_time > self.timeout
            ):
                self._set_state("half_open")
                self.success_count = 0
                logger.info("circuit_breaker_half_open")
            else:
                raise GatewayError(
                    "Circuit breaker is open",
                    GatewayErrorType.TRANSIENT,
                )

        try:
            result = func(*args, **kwargs)
        except stripe.InvalidRequestError as e:
            # Rejected requests only count against a half-open breaker
            if self.state == "half_open":
                self.on_failure()
            raise e
        except Exception as e:
            self.on_failure()
            raise e
        self.on_success()
        return result

    def on_success(self) -> None:
        """Record successful call."""
        self.failure_count = 0
        if self.state == "half_open":
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                self._set_state("closed")
                logger.info("circuit_breaker_closed")

    def on_failure(self) -> None:
        """Record failed call."""
        self.failure_count += 1
        self.last_failure_time = time.time()
        if self.state == "half_open" or self.failure_count >= self.failure_threshold:
            self._set_state("open")
            logger.warning(
                "circuit_breaker_opened",
                failure_count=self.failure_count,
            )

    def _set_state(self, state: str) -> None:
        self.state = state
        metrics.set_circuit_breaker_state(state)


def _map_intent_status(intent: Dict[str, Any]) -> PaymentStatus:
    status = intent.get("status")
    if status == "succeeded":
        return "approved"
    if status == "canceled":
        return "rejected"
    if status == "requires_payment_method" and intent.get("last_payment_error"):
        return "rejected"
    return "pending"


def _extract_qr_code(intent: Dict[str, Any]) -> Optional[str]:
    next_action = intent.get("next_action") or {}
    pix = next_action.get("pix_display_qr_code") or {}
    return pix.get("data")


class StripePaymentGateway(PaymentGateway):
    """
    Stripe implementation of the payment gateway using PIX payment intents.

    Features:
    - Order-scoped idempotency keys so redelivered orders reuse their intent
    - Circuit breaker pattern
    - Retried read-only lookups
    - Comprehensive error classification
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        lookup_wait: Optional[wait_base] = None,
    ) -> None:
        """Initialize Stripe gateway."""
        self.settings = settings or get_settings()
        stripe.api_key = self.settings.stripe_secret_key
        stripe.api_version = self.settings.stripe_api_version
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.lookup_wait = lookup_wait or wait_exponential(multiplier=0.5, min=0.5, max=8)

        logger.info(
            "payment_gateway_initialized",
            api_version=stripe.api_version,
            currency=self.settings.payment_currency,
            test_mode=self.settings.is_test_mode,
        )

    @staticmethod
    def _classify_error(error: stripe.StripeError) -> GatewayErrorType:
        """
        Classify Stripe error for retry logic.

        Args:
            error: Stripe error

        Returns:
            GatewayErrorType: Error classification
        """
        if isinstance(error, stripe.RateLimitError):
            return GatewayErrorType.RATE_LIMIT
        elif isinstance(error, (stripe.APIConnectionError, stripe.APIError)):
            return GatewayErrorType.TRANSIENT
        elif isinstance(
            error,
            (
                stripe.CardError,
                stripe.InvalidRequestError,
                stripe.AuthenticationError,
                stripe.PermissionError,
                stripe.IdempotencyError,
            ),
        ):
            return GatewayErrorType.PERMANENT
        else:
            # Unknown errors are treated as transient
            return GatewayErrorType.TRANSIENT

    def _to_gateway_error(self, error: stripe.StripeError) -> GatewayError:
        error_type = self._classify_error(error)

        logger.error(
            "payment_gateway_error",
            error_type=error_type.value,
            error_code=getattr(error, "code", None),
            error_message=str(error),
        )
        metrics.record_gateway_error(error_type.value)

        return GatewayError(
            message=str(error),
            error_type=error_type,
            original_error=error,
        )

    async def _call(self, operation: str, func: Callable[[], Any]) -> Any:
        """Run a blocking SDK call in the executor behind the circuit breaker."""
        start_time = time.time()
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(None, lambda: self.circuit_breaker.call(func))
        except Exception:
            metrics.record_gateway_call(operation, "error", time.time() - start_time)
            raise
        metrics.record_gateway_call(operation, "success", time.time() - start_time)
        return result

    def _to_minor_units(self, amount: float) -> int:
        return int(round(amount * 100))

    async def create(self, order_id: str, customer_id: str, amount: float) -> PaymentRecord:
        """
        Create a PIX payment intent for an order.

        Args:
            order_id: Originating order
            customer_id: Paying customer
            amount: Amount in major currency units

        Returns:
            PaymentRecord: Created payment, including its QR payload

        Raises:
            GatewayError: If payment creation fails
        """
        amount_cents = self._to_minor_units(amount)
        logger.info(
            "creating_payment",
            order_id=order_id,
            customer_id=customer_id,
            amount_cents=amount_cents,
        )

        def _create() -> Any:
            return stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=self.settings.payment_currency,
                payment_method_types=["pix"],
                payment_method_data={"type": "pix"},
                confirm=True,
                metadata={"order_id": str(order_id), "customer_id": str(customer_id)},
                idempotency_key=f"checkout-{order_id}",
            )

        try:
            intent = await self._call("create", _create)
        except stripe.StripeError as e:
            raise self._to_gateway_error(e) from e

        record = PaymentRecord(
            id=str(intent["id"]),
            order_id=str((intent.get("metadata") or {}).get("order_id", order_id)),
            status=_map_intent_status(intent),
            qr_code=_extract_qr_code(intent),
        )

        logger.info(
            "payment_created",
            payment_id=record.id,
            order_id=record.order_id,
            status=record.status,
        )
        return record

    async def get_by_args(self, payment_id: str) -> Optional[PaymentRecord]:
        """
        Retrieve a payment intent by id.

        Transient failures are retried up to ``gateway_lookup_max_attempts``.

        Raises:
            GatewayError: If retrieval fails
        """
        logger.info("retrieving_payment", payment_id=payment_id)

        retrying = AsyncRetrying(
            retry=retry_if_exception(
                lambda e: isinstance(e, GatewayError) and e.is_retryable
            ),
            stop=stop_after_attempt(self.settings.gateway_lookup_max_attempts),
            wait=self.lookup_wait,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._retrieve(payment_id)
        return None  # pragma: no cover

    async def _retrieve(self, payment_id: str) -> Optional[PaymentRecord]:
        def _get() -> Any:
            return stripe.PaymentIntent.retrieve(payment_id)

        try:
            intent = await self._call("get_by_args", _get)
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing":
                logger.info("payment_not_found", payment_id=payment_id)
                return None
            raise self._to_gateway_error(e) from e
        except stripe.StripeError as e:
            raise self._to_gateway_error(e) from e

        order_id = (intent.get("metadata") or {}).get("order_id")
        if not order_id:
            raise GatewayError(
                f"Payment {payment_id} carries no order reference",
                GatewayErrorType.PERMANENT,
            )

        return PaymentRecord(
            id=str(intent["id"]),
            order_id=str(order_id),
            status=_map_intent_status(intent),
        )
