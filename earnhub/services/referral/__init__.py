"""
Referral services package.

- attachment: attaches new users and materializes A-D edges
- settlement: pays commissions up the ancestor chain
- query_manager: team, referrer and commission views
"""

from earnhub.services.referral.attachment import (
    AttachResult,
    ReferralAttachmentService,
)
from earnhub.services.referral.query_manager import (
    ReferralQueryManager,
    TeamQuery,
)
from earnhub.services.referral.settlement import (
    CommissionSettlementService,
    SettlementResult,
    SkipReason,
)


__all__ = [
    "AttachResult",
    "CommissionSettlementService",
    "ReferralAttachmentService",
    "ReferralQueryManager",
    "SettlementResult",
    "SkipReason",
    "TeamQuery",
]
