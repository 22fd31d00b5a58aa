"""Background workers for queue ingestion."""
from .order_created_worker import build_queue_listeners, start_order_created_worker

__all__ = ["build_queue_listeners", "start_order_created_worker"]
