"""
Checkout store.

CheckoutStore is the persistence contract the core depends on;
CheckoutRepository implements it on top of SQLAlchemy async sessions.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_service.database.connection import get_session_factory
from checkout_service.database.models import CheckoutRecord
from checkout_service.domain.checkout import Checkout, CheckoutStatus

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"payment_id", "payment_code", "status"})


class CheckoutStore(ABC):
    """Persistence contract for checkouts."""

    @abstractmethod
    async def get_all(self) -> List[Checkout]:
        pass

    @abstractmethod
    async def get_by_id(self, checkout_id: int) -> Optional[Checkout]:
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: str) -> Optional[Checkout]:
        pass

    @abstractmethod
    async def create(self, checkout: Checkout) -> Checkout:
        pass

    @abstractmethod
    async def update(self, checkout_id: int, fields: Dict[str, Any]) -> Optional[Checkout]:
        """Apply a partial update; None means the id no longer exists."""
        pass


def _to_domain(record: CheckoutRecord) -> Checkout:
    return Checkout(
        id=record.id,
        order_id=record.order_id,
        payment_id=record.payment_id,
        payment_code=record.payment_code,
        status=CheckoutStatus(record.status),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class CheckoutRepository(CheckoutStore):
    """SQLAlchemy-backed checkout store. Each call uses its own session."""

    def __init__(
        self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    ):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def get_all(self) -> List[Checkout]:
        async with self.session_factory() as db:
            result = await db.execute(select(CheckoutRecord).order_by(CheckoutRecord.id))
            return [_to_domain(record) for record in result.scalars().all()]

    async def get_by_id(self, checkout_id: int) -> Optional[Checkout]:
        async with self.session_factory() as db:
            record = await db.get(CheckoutRecord, checkout_id)
            return _to_domain(record) if record is not None else None

    async def get_by_order_id(self, order_id: str) -> Optional[Checkout]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(CheckoutRecord).where(CheckoutRecord.order_id == str(order_id))
            )
            record = result.scalars().first()
            return _to_domain(record) if record is not None else None

    async def create(self, checkout: Checkout) -> Checkout:
        """
        Insert a new checkout.

        Raises:
            sqlalchemy.exc.IntegrityError: If the order already has a checkout
        """
        record = CheckoutRecord(
            order_id=checkout.order_id,
            payment_id=checkout.payment_id,
            payment_code=checkout.payment_code or "",
            status=checkout.status.value,
        )
        async with self.session_factory() as db:
            db.add(record)
            try:
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            await db.refresh(record)

        logger.info(
            "checkout_persisted",
            checkout_id=record.id,
            order_id=record.order_id,
            payment_id=record.payment_id,
        )
        return _to_domain(record)

    async def update(self, checkout_id: int, fields: Dict[str, Any]) -> Optional[Checkout]:
        values = {
            key: (value.value if isinstance(value, Enum) else value)
            for key, value in fields.items()
            if key in UPDATABLE_FIELDS and value is not None
        }

        async with self.session_factory() as db:
            if values:
                stmt = (
                    update(CheckoutRecord)
                    .where(CheckoutRecord.id == checkout_id)
                    .values(**values)
                )
                try:
                    result = await db.execute(stmt)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise

                if result.rowcount == 0:
                    logger.warning("checkout_update_no_rows", checkout_id=checkout_id)
                    return None

            result = await db.execute(
                select(CheckoutRecord)
                .where(CheckoutRecord.id == checkout_id)
                .execution_options(populate_existing=True)
            )
            record = result.scalars().first()
            return _to_domain(record) if record is not None else None
