"""
Financial record model.

Write-once audit log. Every balance mutation appends exactly one row in
the same transaction, with the real before/after balance of the wallet
that moved.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.types import MoneyType


class FinancialRecord(Base):
    """Balance change audit entry."""

    __tablename__ = "financial_records"
    __table_args__ = (
        Index("idx_financial_records_user_created", "user_id", "created_at"),
        Index("idx_financial_records_reference", "reference_type", "reference_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # Signed: credits positive, debits negative, vip_upgrade zero
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # income | personal
    wallet: Mapped[str] = mapped_column(String(20), nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    reference_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    reference_type: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<FinancialRecord(user_id={self.user_id}, type={self.type}, "
            f"amount={self.amount}, {self.balance_before}->{self.balance_after})>"
        )
