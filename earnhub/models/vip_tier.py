"""
VIP tier model.

Reference data: investment thresholds, daily allowances and commission
rates per referral level. Read-only for the core.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.enums import CommissionType
from earnhub.models.types import MoneyType, RatePercentType


class VipTier(Base):
    """VIP tier with thresholds and commission percents."""

    __tablename__ = "vip_tiers"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Ordering key: higher rank = better tier
    rank: Mapped[int] = mapped_column(
        Integer, unique=True, index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    investment_threshold: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    daily_task_limit: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    daily_video_limit: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    task_reward: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Commission percents (3.0 = 3%) on descendants' video earnings
    video_commission_a: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )
    video_commission_b: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )
    video_commission_c: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )
    video_commission_d: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )

    # Commission percents on descendants' VIP upgrades
    upgrade_commission_a: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )
    upgrade_commission_b: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )
    upgrade_commission_c: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )
    upgrade_commission_d: Mapped[Decimal] = mapped_column(
        RatePercentType, default=Decimal("0"), nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, index=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def commission_percent(
        self, commission_type: CommissionType, level: str
    ) -> Decimal:
        """
        Get commission percent for a referral level.

        Args:
            commission_type: video or upgrade
            level: Referral level (A-D)

        Returns:
            Percent value (3.0 means 3%)
        """
        column = f"{commission_type.value}_commission_{level.lower()}"
        return getattr(self, column)

    def commission_rate(
        self, commission_type: CommissionType, level: str
    ) -> Decimal:
        """Same as commission_percent, as a fraction (0.03 for 3%)."""
        return self.commission_percent(commission_type, level) / Decimal(100)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<VipTier(rank={self.rank}, name={self.name}, "
            f"investment_threshold={self.investment_threshold})>"
        )
