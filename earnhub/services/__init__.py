"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from earnhub.services.base_service import BaseService, log_operation

# Flow Services
from earnhub.services.deposit_service import DepositApproval, DepositService

# Ledger
from earnhub.services.ledger import (
    BalanceDelta,
    LedgerStore,
    LedgerTransaction,
    ReconciliationResult,
)

# Referral Services
from earnhub.services.referral import (
    AttachResult,
    CommissionSettlementService,
    ReferralAttachmentService,
    ReferralQueryManager,
    SettlementResult,
    SkipReason,
    TeamQuery,
)
from earnhub.services.task_service import TaskService
from earnhub.services.user_service import UserService, generate_referral_code
from earnhub.services.video_service import VideoService, WatchResult

# VIP Services
from earnhub.services.vip import (
    UpgradeResult,
    VipEligibilityEvaluator,
    upgrade_event_id,
)
from earnhub.services.withdrawal_service import WithdrawalService


__all__ = [
    # Base Infrastructure
    "BaseService",
    "log_operation",
    # Ledger
    "BalanceDelta",
    "LedgerStore",
    "LedgerTransaction",
    "ReconciliationResult",
    # Referral
    "AttachResult",
    "CommissionSettlementService",
    "ReferralAttachmentService",
    "ReferralQueryManager",
    "SettlementResult",
    "SkipReason",
    "TeamQuery",
    # VIP
    "UpgradeResult",
    "VipEligibilityEvaluator",
    "upgrade_event_id",
    # Flows
    "DepositApproval",
    "DepositService",
    "TaskService",
    "UserService",
    "VideoService",
    "WatchResult",
    "WithdrawalService",
    "generate_referral_code",
]
