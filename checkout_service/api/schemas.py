"""
Pydantic schemas for API request/response models.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from checkout_service.domain.checkout import Checkout
from checkout_service.domain.events import PaymentNotificationData


class CheckoutResponse(BaseModel):
    """A checkout as exposed over HTTP."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "id": 1,
                    "orderId": "123",
                    "paymentId": "pi_3Nxyz",
                    "paymentCode": "00020101021226...",
                    "status": "WaitingPayment",
                    "createdAt": "2025-01-06T10:00:00Z",
                    "updatedAt": "2025-01-06T10:00:00Z",
                }
            ]
        },
    )

    id: Optional[int] = Field(default=None, description="Checkout ID")
    order_id: str = Field(..., alias="orderId", description="Order identifier")
    payment_id: str = Field(..., alias="paymentId", description="Gateway payment ID")
    payment_code: str = Field(..., alias="paymentCode", description="PIX QR code payload")
    status: str = Field(..., description="WaitingPayment, Paid or Refused")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_domain(cls, checkout: Checkout) -> "CheckoutResponse":
        return cls(
            id=checkout.id,
            order_id=checkout.order_id,
            payment_id=checkout.payment_id,
            payment_code=checkout.payment_code,
            status=checkout.status.value,
            created_at=checkout.created_at,
            updated_at=checkout.updated_at,
        )


class PaymentNotificationRequest(BaseModel):
    """Gateway notification payload."""

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [{"action": "payment.updated", "data": {"id": "pi_3Nxyz"}}]
        },
    )

    action: str = Field(..., description="Notification action, e.g. payment.updated")
    data: PaymentNotificationData


class NotificationResponse(BaseModel):
    """Result of processing a gateway notification."""

    status: str = Field(..., description="updated, unchanged or ignored")
    checkout: Optional[CheckoutResponse] = Field(default=None)


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")
