"""
API routes for checkout queries and gateway notifications.
"""
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from checkout_service.core.queries import get_checkout_by_order_id, get_checkouts
from checkout_service.core.update_status import PaymentNotificationDispatcher
from checkout_service.database.repository import CheckoutStore
from checkout_service.domain.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    UpdateFailedError,
)
from checkout_service.integrations.payment_gateway import GatewayError
from checkout_service.monitoring.health import HealthCheck

from .dependencies import get_checkout_store, get_health_check, get_notification_dispatcher
from .schemas import (
    CheckoutResponse,
    HealthCheckResponse,
    NotificationResponse,
    PaymentNotificationRequest,
)

logger = structlog.get_logger(__name__)

checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])
monitoring_router = APIRouter(tags=["monitoring"])


@checkout_router.get(
    "",
    response_model=List[CheckoutResponse],
    summary="List checkouts",
)
async def list_checkouts(
    store: CheckoutStore = Depends(get_checkout_store),
) -> List[CheckoutResponse]:
    checkouts = await get_checkouts(store)
    return [CheckoutResponse.from_domain(checkout) for checkout in checkouts]


@checkout_router.get(
    "/{order_id}",
    response_model=CheckoutResponse,
    summary="Get checkout",
    description="Retrieve the checkout of an order",
)
async def get_checkout(
    order_id: str,
    store: CheckoutStore = Depends(get_checkout_store),
) -> CheckoutResponse:
    try:
        checkout = await get_checkout_by_order_id(store, order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CheckoutResponse.from_domain(checkout)


@checkout_router.post(
    "/notification",
    response_model=NotificationResponse,
    response_model_exclude_none=True,
    summary="Payment notification",
    description="Synchronize a checkout with its payment after a gateway notification",
)
async def payment_notification(
    request: PaymentNotificationRequest,
    dispatcher: PaymentNotificationDispatcher = Depends(get_notification_dispatcher),
) -> NotificationResponse:
    """
    Handle a gateway notification.

    Only ``payment.updated`` actions touch a checkout; others are ignored.
    """
    payment_id = request.data.id
    logger.info(
        "api_payment_notification_received",
        action=request.action,
        payment_id=payment_id,
    )

    try:
        result = await dispatcher.dispatch(request.action, payment_id)

    except NotFoundError as e:
        logger.warning("api_payment_notification_not_found", payment_id=payment_id, error=str(e))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    except InvalidStatusTransitionError as e:
        logger.warning(
            "api_payment_notification_invalid_transition",
            payment_id=payment_id,
            error=str(e),
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    except UpdateFailedError as e:
        logger.error("api_payment_notification_update_failed", payment_id=payment_id, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    except GatewayError as e:
        logger.error("api_payment_notification_gateway_error", payment_id=payment_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Payment gateway error: {str(e)}",
        )

    return NotificationResponse(
        status=result.outcome.value,
        checkout=CheckoutResponse.from_domain(result.checkout) if result.checkout else None,
    )


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    try:
        return await health_check.check_all()
    except Exception as e:
        logger.error("health_check_error", error=str(e))
        return {
            "status": "unhealthy",
            "checks": {"error": str(e)},
        }


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
