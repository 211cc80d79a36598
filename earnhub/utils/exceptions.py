"""
Exception types.

Attachment errors are client-correctable and surfaced to the caller.
Ledger errors come from the storage boundary: TransactionConflict is
transient and safe to retry, LedgerWriteFailed is fatal for the
operation. Skips and idempotent short-circuits are not exceptions.
"""


class EarnhubError(Exception):
    """Base class for all domain errors."""

    pass


# Referral attachment

class ReferralAttachmentError(EarnhubError):
    """Attachment rejected; caller may correct the input."""

    pass


class AlreadyReferred(ReferralAttachmentError):
    """User already has a referrer (referrer is permanent)."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} already has a referrer")
        self.user_id = user_id


class InvalidCode(ReferralAttachmentError):
    """Referral code does not resolve to an active user."""

    def __init__(self, referral_code: str) -> None:
        super().__init__(f"Invalid referral code: {referral_code!r}")
        self.referral_code = referral_code


class SelfReferral(ReferralAttachmentError):
    """Referrer is the user itself or one of its descendants."""

    def __init__(self, user_id: int, referrer_id: int) -> None:
        super().__init__(
            f"User {user_id} cannot be referred by {referrer_id}"
        )
        self.user_id = user_id
        self.referrer_id = referrer_id


# Ledger store

class LedgerError(EarnhubError):
    """Storage-level failure."""

    pass


class TransactionConflict(LedgerError):
    """Serialization conflict; retry the whole operation."""

    pass


class LedgerWriteFailed(LedgerError):
    """Write failed; the transaction was rolled back."""

    pass


# Flow validation

class OperationError(EarnhubError):
    """Operation refused by a business rule."""

    pass


class UserNotFound(OperationError):
    """No such user."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class InvalidAmount(OperationError):
    """Amount is non-positive or outside the allowed range."""

    pass


class InsufficientBalance(OperationError):
    """Wallet balance is lower than the requested debit."""

    pass


class DailyLimitReached(OperationError):
    """Daily task or video allowance used up."""

    def __init__(self, limit: int, used: int) -> None:
        super().__init__(f"Daily limit reached ({used}/{limit})")
        self.limit = limit
        self.used = used


class AlreadyCompleted(OperationError):
    """Video already watched or task already completed today."""

    pass


class VipRequired(OperationError):
    """Operation is only available to VIP members."""

    pass


class InvalidStateTransition(OperationError):
    """Deposit or withdrawal is not in a state that allows the action."""

    pass
