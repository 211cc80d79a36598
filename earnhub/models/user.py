"""
User model.

Represents a platform member with their wallets and VIP rank.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.config.constants import NO_VIP_RANK
from earnhub.models.base import Base
from earnhub.models.enums import UserStatus
from earnhub.models.types import MoneyType


class User(Base):
    """User model - platform members."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'income_balance >= 0', name='check_user_income_balance_non_negative'
        ),
        CheckConstraint(
            'personal_balance >= 0',
            name='check_user_personal_balance_non_negative'
        ),
        CheckConstraint(
            'invested_total >= 0',
            name='check_user_invested_total_non_negative'
        ),
        CheckConstraint(
            'referrer_id IS NULL OR referrer_id != id',
            name='check_user_not_self_referred'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    username: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False
    )
    phone: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )

    # Direct referrer, set at most once
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20), default=UserStatus.ACTIVE.value, nullable=False, index=True
    )

    # VIP rank (0 = no VIP tier); matches vip_tiers.rank
    vip_rank: Mapped[int] = mapped_column(
        Integer, default=NO_VIP_RANK, nullable=False, index=True
    )

    # Wallets
    income_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    personal_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    invested_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Daily allowances, reset lazily when counters_reset_on != today
    daily_task_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    daily_video_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    counters_reset_on: Mapped[date | None] = mapped_column(
        Date, nullable=True
    )

    # Free trial window
    trial_ends_on: Mapped[date | None] = mapped_column(
        Date, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_vip(self) -> bool:
        """True when the user holds any VIP tier."""
        return self.vip_rank > NO_VIP_RANK

    @property
    def is_active(self) -> bool:
        """True unless banned or deactivated."""
        return self.status == UserStatus.ACTIVE.value

    def is_on_trial(self, today: date) -> bool:
        """Check whether the free trial covers the given day."""
        return self.trial_ends_on is not None and today <= self.trial_ends_on

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, username={self.username}, "
            f"vip_rank={self.vip_rank}, referrer_id={self.referrer_id})>"
        )
