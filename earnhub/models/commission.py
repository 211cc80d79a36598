"""
Commission record model.

Append-only payout rows. The unique key (event_id, beneficiary_id, level)
is the idempotency guard for settlement.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.enums import CommissionStatus
from earnhub.models.types import MoneyType, PreciseMoneyType, RatePercentType


class CommissionRecord(Base):
    """Commission paid to an ancestor for a descendant's event."""

    __tablename__ = "referral_commissions"
    __table_args__ = (
        UniqueConstraint(
            "event_id",
            "beneficiary_id",
            "level",
            name="uq_commission_event_beneficiary_level",
        ),
        CheckConstraint(
            "level IN ('A', 'B', 'C', 'D')", name="check_commission_level"
        ),
        CheckConstraint(
            "commission_type IN ('video', 'upgrade')",
            name="check_commission_type",
        ),
        CheckConstraint(
            "commission_amount > 0", name="check_commission_amount_positive"
        ),
        Index("idx_commission_source_user", "source_user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Idempotency key of the triggering action
    event_id: Mapped[str] = mapped_column(String(100), nullable=False)

    beneficiary_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    source_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    level: Mapped[str] = mapped_column(String(1), nullable=False)
    commission_type: Mapped[str] = mapped_column(String(20), nullable=False)
    commission_percent: Mapped[Decimal] = mapped_column(
        RatePercentType, nullable=False
    )
    base_amount: Mapped[Decimal] = mapped_column(
        PreciseMoneyType, nullable=False
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=CommissionStatus.PAID.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionRecord(event_id={self.event_id}, "
            f"beneficiary_id={self.beneficiary_id}, level={self.level}, "
            f"amount={self.commission_amount})>"
        )
