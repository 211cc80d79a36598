"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from earnhub.models.activity import TaskCompletion, VideoWatch
from earnhub.models.base import Base
from earnhub.models.commission import CommissionRecord
from earnhub.models.deposit import Deposit
from earnhub.models.enums import (
    CommissionStatus,
    CommissionType,
    DepositStatus,
    FinancialRecordType,
    SettlementEventType,
    UserStatus,
    WalletType,
    WithdrawalStatus,
)
from earnhub.models.financial_record import FinancialRecord
from earnhub.models.referral import ReferralEdge
from earnhub.models.user import User
from earnhub.models.vip_tier import VipTier
from earnhub.models.withdrawal import WithdrawalRequest


__all__ = [
    "Base",
    # Core
    "User",
    "VipTier",
    "ReferralEdge",
    "CommissionRecord",
    "FinancialRecord",
    # Flows
    "Deposit",
    "WithdrawalRequest",
    "VideoWatch",
    "TaskCompletion",
    # Enums
    "CommissionStatus",
    "CommissionType",
    "DepositStatus",
    "FinancialRecordType",
    "SettlementEventType",
    "UserStatus",
    "WalletType",
    "WithdrawalStatus",
]
