"""Checkout service: order-created ingestion and payment status tracking."""

__version__ = "1.0.0"
