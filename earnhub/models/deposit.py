"""
Deposit model.

Manually verified deposits: the user uploads a payment proof elsewhere
and an administrator approves or rejects the request.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.enums import DepositStatus
from earnhub.models.types import MoneyType


class Deposit(Base):
    """Deposit request awaiting or past manual verification."""

    __tablename__ = "deposits"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_deposit_amount_positive'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    # Opaque pointer to the uploaded proof (storage is external)
    proof_reference: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=DepositStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_pending(self) -> bool:
        """True while awaiting review."""
        return self.status == DepositStatus.PENDING.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Deposit(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
