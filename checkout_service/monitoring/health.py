"""
Health checks for readiness/liveness probes.

Checks:
- Database connectivity
- Order-created queue reachability
- Stripe API reachability
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import stripe
import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_service.config import Settings, get_settings
from checkout_service.database.connection import get_session_factory
from checkout_service.integrations.sqs_client import SqsClient

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """
    Health check service for the checkout service's dependencies.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        sqs_client: Optional[SqsClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._sqs_client = sqs_client

    async def check_database(self) -> Dict[str, Any]:
        """
        Check database connectivity.

        Raises:
            HealthCheckError: If database check fails
        """
        try:
            session_factory = self._session_factory or get_session_factory()
            async with session_factory() as db:
                result = await db.execute(text("SELECT 1"))
                result.scalar()
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            raise HealthCheckError(f"Database health check failed: {str(e)}") from e

        return {
            "status": "healthy",
            "service": "database",
            "message": "Database connection successful",
        }

    async def check_queue(self) -> Dict[str, Any]:
        """
        Check that the order-created queue is reachable.

        Raises:
            HealthCheckError: If the queue cannot be queried
        """
        try:
            if self._sqs_client is None:
                self._sqs_client = SqsClient(self.settings)
            attributes = await self._sqs_client.get_queue_attributes(
                self.settings.order_created_queue_url
            )
        except Exception as e:
            logger.error("queue_health_check_failed", error=str(e))
            raise HealthCheckError(f"Queue health check failed: {str(e)}") from e

        return {
            "status": "healthy",
            "service": "sqs",
            "message": "Queue reachable",
            "approximate_messages": int(attributes.get("ApproximateNumberOfMessages", 0)),
        }

    async def check_stripe(self) -> Dict[str, Any]:
        """
        Check Stripe API reachability.

        Raises:
            HealthCheckError: If Stripe check fails
        """
        try:
            stripe.api_key = self.settings.stripe_secret_key
            # Minimal data transfer
            await asyncio.get_event_loop().run_in_executor(
                None, lambda: stripe.PaymentIntent.list(limit=1)
            )
        except Exception as e:
            logger.error("stripe_health_check_failed", error=str(e))
            raise HealthCheckError(f"Stripe health check failed: {str(e)}") from e

        return {
            "status": "healthy",
            "service": "stripe",
            "message": "Stripe API connection successful",
            "test_mode": self.settings.is_test_mode,
        }

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall status plus one entry per dependency
        """
        probes: Dict[str, Callable[[], Awaitable[Dict[str, Any]]]] = {
            "database": self.check_database,
            "sqs": self.check_queue,
            "stripe": self.check_stripe,
        }

        checks: Dict[str, Any] = {}
        all_healthy = True
        for service, probe in probes.items():
            try:
                checks[service] = await probe()
            except HealthCheckError as e:
                checks[service] = {
                    "status": "unhealthy",
                    "service": service,
                    "error": str(e),
                }
                all_healthy = False

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """Liveness probe: the process is up. No dependency is touched."""
        return {
            "status": "alive",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        return await self.check_all()
