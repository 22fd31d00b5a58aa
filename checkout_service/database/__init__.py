"""Database package for the checkout service."""
from .connection import close_db, get_session_factory, init_db
from .models import Base, CheckoutRecord
from .repository import CheckoutRepository, CheckoutStore

__all__ = [
    "Base",
    "CheckoutRecord",
    "CheckoutRepository",
    "CheckoutStore",
    "close_db",
    "get_session_factory",
    "init_db",
]
