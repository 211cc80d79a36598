"""
Enumerations shared by models and services.
"""

from enum import Enum


class UserStatus(str, Enum):
    """Soft status of a user account (users are never hard-deleted)."""

    ACTIVE = "active"
    BANNED = "banned"
    INACTIVE = "inactive"


class CommissionType(str, Enum):
    """What triggered a commission."""

    VIDEO = "video"
    UPGRADE = "upgrade"


class SettlementEventType(str, Enum):
    """Event types accepted by commission settlement."""

    VIDEO = "video"
    DEPOSIT_UPGRADE = "deposit_upgrade"

    @property
    def commission_type(self) -> CommissionType:
        """Commission type recorded for this event."""
        if self is SettlementEventType.VIDEO:
            return CommissionType.VIDEO
        return CommissionType.UPGRADE


class CommissionStatus(str, Enum):
    """Commission payout status."""

    PAID = "paid"
    PENDING = "pending"


class FinancialRecordType(str, Enum):
    """Financial record (audit log) entry types."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    WITHDRAWAL_REFUND = "withdrawal_refund"
    TASK_REWARD = "task_reward"
    VIDEO_REWARD = "video_reward"
    COMMISSION = "commission"
    VIP_UPGRADE = "vip_upgrade"


class WalletType(str, Enum):
    """Which balance a financial record describes."""

    INCOME = "income"
    PERSONAL = "personal"


class DepositStatus(str, Enum):
    """Manual deposit verification status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(str, Enum):
    """Withdrawal request lifecycle."""

    PENDING = "pending"
    PAID = "paid"
    REJECTED = "rejected"
