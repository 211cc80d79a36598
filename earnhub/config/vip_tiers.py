"""
Default VIP tier configuration.

Seed data for the vip_tiers table. Runtime code never reads these values
directly: tiers, limits and commission rates are always loaded from the
database so administrators can change them without a redeploy.
"""

from decimal import Decimal
from typing import NamedTuple


class VipTierConfig(NamedTuple):
    """Seed row for one VIP tier."""

    rank: int  # 1 = lowest VIP tier
    name: str
    investment_threshold: Decimal  # Cumulative investment needed
    daily_task_limit: int
    daily_video_limit: int
    task_reward: Decimal  # Reward per completed task
    # Commission percentages by referral level A-D
    video_commission_percent: tuple[Decimal, Decimal, Decimal, Decimal]
    upgrade_commission_percent: tuple[Decimal, Decimal, Decimal, Decimal]


VIDEO_COMMISSION_PERCENT = (
    Decimal("3.0"),
    Decimal("1.5"),
    Decimal("0.75"),
    Decimal("0.25"),
)

UPGRADE_COMMISSION_PERCENT = (
    Decimal("10.0"),
    Decimal("5.0"),
    Decimal("2.5"),
    Decimal("1.0"),
)


DEFAULT_VIP_TIERS: list[VipTierConfig] = [
    VipTierConfig(
        rank=1,
        name="VIP1",
        investment_threshold=Decimal("2000"),
        daily_task_limit=5,
        daily_video_limit=5,
        task_reward=Decimal("20"),
        video_commission_percent=VIDEO_COMMISSION_PERCENT,
        upgrade_commission_percent=UPGRADE_COMMISSION_PERCENT,
    ),
    VipTierConfig(
        rank=2,
        name="VIP2",
        investment_threshold=Decimal("5000"),
        daily_task_limit=10,
        daily_video_limit=10,
        task_reward=Decimal("25"),
        video_commission_percent=VIDEO_COMMISSION_PERCENT,
        upgrade_commission_percent=UPGRADE_COMMISSION_PERCENT,
    ),
    VipTierConfig(
        rank=3,
        name="VIP3",
        investment_threshold=Decimal("10000"),
        daily_task_limit=15,
        daily_video_limit=15,
        task_reward=Decimal("30"),
        video_commission_percent=VIDEO_COMMISSION_PERCENT,
        upgrade_commission_percent=UPGRADE_COMMISSION_PERCENT,
    ),
]
