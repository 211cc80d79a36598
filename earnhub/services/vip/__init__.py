"""
VIP services package.
"""

from earnhub.services.vip.eligibility import (
    UpgradeResult,
    VipEligibilityEvaluator,
    upgrade_event_id,
)


__all__ = [
    "UpgradeResult",
    "VipEligibilityEvaluator",
    "upgrade_event_id",
]
