"""FastAPI application and routes."""
from .main import app
from .schemas import CheckoutResponse, NotificationResponse, PaymentNotificationRequest

__all__ = ["app", "CheckoutResponse", "NotificationResponse", "PaymentNotificationRequest"]
