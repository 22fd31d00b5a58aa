"""
Pytest configuration and fixtures.
"""
import os

os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key_for_testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault(
    "ORDER_CREATED_QUEUE_URL", "https://sqs.us-east-1.amazonaws.com/000000000000/order-created"
)
os.environ.setdefault(
    "PAYMENT_COMPLETED_QUEUE_URL",
    "https://sqs.us-east-1.amazonaws.com/000000000000/payment-completed.fifo",
)
os.environ.setdefault("RUN_LISTENER_IN_API", "false")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from typing import Any, AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from checkout_service.config import Settings, get_settings  # noqa: E402
from checkout_service.database.models import Base  # noqa: E402
from checkout_service.database.repository import CheckoutRepository, CheckoutStore  # noqa: E402
from checkout_service.domain.checkout import Checkout, CheckoutStatus  # noqa: E402
from checkout_service.integrations.payment_gateway import PaymentGateway  # noqa: E402
from checkout_service.integrations.publisher import CheckoutEventPublisher  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Settings built from the test environment."""
    return get_settings()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], Any]:
    """In-memory SQLite database with the checkout schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def checkout_repository(session_factory: async_sessionmaker[AsyncSession]) -> CheckoutRepository:
    return CheckoutRepository(session_factory)


@pytest.fixture
def mock_gateway() -> AsyncMock:
    return AsyncMock(spec=PaymentGateway)


@pytest.fixture
def mock_store() -> AsyncMock:
    return AsyncMock(spec=CheckoutStore)


@pytest.fixture
def mock_publisher() -> AsyncMock:
    return AsyncMock(spec=CheckoutEventPublisher)


@pytest.fixture
def waiting_checkout() -> Checkout:
    """A persisted checkout still waiting for its payment."""
    return Checkout(
        id=1,
        order_id="123",
        payment_id="456",
        payment_code="QRCODE123",
        status=CheckoutStatus.WAITING_PAYMENT,
    )
