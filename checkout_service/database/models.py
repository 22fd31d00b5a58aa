"""SQLAlchemy database models for the checkout service."""
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class CheckoutRecord(Base):
    """
    Checkout records table.

    One row per order; the unique order_id column backs the
    one-checkout-per-order invariant.
    """

    __tablename__ = "checkouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    payment_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    payment_code: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('WaitingPayment', 'Paid', 'Refused')",
            name="valid_checkout_status",
        ),
    )

    def __repr__(self) -> str:
        """String representation of CheckoutRecord."""
        return (
            f"<CheckoutRecord(id={self.id}, order_id={self.order_id}, "
            f"payment_id={self.payment_id}, status={self.status})>"
        )
