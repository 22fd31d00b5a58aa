"""
Prometheus metrics for checkout service monitoring.

Tracks:
- Queue messages by outcome
- Polling cycle duration
- Checkouts created and status transitions
- Payment gateway calls and errors
- Downstream notifications
"""
from prometheus_client import Counter, Gauge, Histogram

# Queue ingestion metrics
queue_messages_total = Counter(
    "checkout_queue_messages_total",
    "Total queue messages handled",
    ["queue", "outcome"],  # acknowledged, failed, delete_failed
)

queue_receive_errors_total = Counter(
    "checkout_queue_receive_errors_total",
    "Total failed receive calls",
    ["queue"],
)

queue_poll_duration_seconds = Histogram(
    "checkout_queue_poll_duration_seconds",
    "Polling cycle duration in seconds",
    ["queue"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Checkout metrics
checkouts_created_total = Counter(
    "checkouts_created_total",
    "Total checkouts created",
)

checkout_status_transitions_total = Counter(
    "checkout_status_transitions_total",
    "Total checkout status updates",
    ["status"],
)

# Gateway metrics
gateway_requests_total = Counter(
    "payment_gateway_requests_total",
    "Total payment gateway requests",
    ["operation", "status"],  # operation: create, get_by_args
)

gateway_errors_total = Counter(
    "payment_gateway_errors_total",
    "Total payment gateway errors",
    ["error_type"],  # transient, permanent, rate_limit
)

gateway_duration_seconds = Histogram(
    "payment_gateway_duration_seconds",
    "Payment gateway call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
)

gateway_circuit_breaker_state = Gauge(
    "payment_gateway_circuit_breaker_state",
    "Gateway circuit breaker state (0=closed, 1=open, 2=half_open)",
)

# Notification metrics
notifications_published_total = Counter(
    "checkout_notifications_published_total",
    "Total checkout status notifications published",
    ["publisher", "status"],
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_queue_message(queue: str, outcome: str) -> None:
        """Record the outcome of a single queue message."""
        queue_messages_total.labels(queue=queue, outcome=outcome).inc()

    @staticmethod
    def record_receive_error(queue: str) -> None:
        queue_receive_errors_total.labels(queue=queue).inc()

    @staticmethod
    def record_poll_duration(queue: str, duration_seconds: float) -> None:
        queue_poll_duration_seconds.labels(queue=queue).observe(duration_seconds)

    @staticmethod
    def record_checkout_created() -> None:
        checkouts_created_total.inc()

    @staticmethod
    def record_status_transition(status: str) -> None:
        checkout_status_transitions_total.labels(status=status).inc()

    @staticmethod
    def record_gateway_call(operation: str, status: str, duration_seconds: float) -> None:
        """Record payment gateway call."""
        gateway_requests_total.labels(operation=operation, status=status).inc()
        gateway_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_gateway_error(error_type: str) -> None:
        gateway_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def set_circuit_breaker_state(state: str) -> None:
        """Set circuit breaker state."""
        state_map = {"closed": 0, "open": 1, "half_open": 2}
        gateway_circuit_breaker_state.set(state_map.get(state, 0))

    @staticmethod
    def record_notification(publisher: str, status: str) -> None:
        notifications_published_total.labels(publisher=publisher, status=status).inc()


# Export singleton instance
metrics = MetricsCollector()
