"""
Ledger store.

Transactional access to balances, referral edges and the audit log.
Every balance change goes through LedgerTransaction.update_balances(),
which pairs one atomic UPDATE with one FinancialRecord in the same
transaction.

Database exceptions are translated here:
    - serialization failure, deadlock, "database is locked"
      -> TransactionConflict (retry the whole operation)
    - IntegrityError -> propagated unchanged (unique keys carry meaning)
    - any other SQLAlchemyError -> LedgerWriteFailed
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeVar

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from earnhub.config.settings import settings
from earnhub.models.enums import FinancialRecordType, WalletType
from earnhub.models.financial_record import FinancialRecord
from earnhub.models.user import User
from earnhub.repositories.activity_repository import (
    TaskCompletionRepository,
    VideoWatchRepository,
)
from earnhub.repositories.commission_repository import CommissionRepository
from earnhub.repositories.deposit_repository import DepositRepository
from earnhub.repositories.financial_record_repository import (
    FinancialRecordRepository,
)
from earnhub.repositories.referral_repository import (
    AncestorLink,
    ReferralRepository,
)
from earnhub.repositories.user_repository import UserRepository
from earnhub.repositories.vip_tier_repository import VipTierRepository
from earnhub.repositories.withdrawal_repository import WithdrawalRepository
from earnhub.utils.exceptions import (
    InsufficientBalance,
    LedgerWriteFailed,
    TransactionConflict,
    UserNotFound,
)


T = TypeVar("T")

ZERO = Decimal("0")

# PostgreSQL SQLSTATEs that mean "retry the transaction"
_CONFLICT_SQLSTATES = {"40001", "40P01"}
_CONFLICT_MESSAGES = (
    "could not serialize access",
    "deadlock detected",
    "database is locked",
)


def _is_conflict(error: DBAPIError) -> bool:
    """Check whether a driver error is a transient serialization conflict."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in _CONFLICT_MESSAGES)


@dataclass(frozen=True)
class BalanceDelta:
    """
    Signed change to a user's balance columns.

    Exactly one of income/personal must be non-zero: the paired
    FinancialRecord describes that wallet.
    """

    income: Decimal = ZERO
    personal: Decimal = ZERO
    invested: Decimal = ZERO
    total_earnings: Decimal = ZERO

    @property
    def wallet(self) -> WalletType:
        """Wallet that moves."""
        if self.income != ZERO and self.personal == ZERO:
            return WalletType.INCOME
        if self.personal != ZERO and self.income == ZERO:
            return WalletType.PERSONAL
        raise ValueError("BalanceDelta must move exactly one wallet")

    @property
    def amount(self) -> Decimal:
        """Signed amount of the wallet that moves."""
        return self.income if self.wallet is WalletType.INCOME else self.personal


@dataclass(frozen=True)
class ReconciliationResult:
    """Audit log total versus wallet balances for one user."""

    user_id: int
    ledger_total: Decimal
    wallet_total: Decimal

    @property
    def is_balanced(self) -> bool:
        """True when the log explains the balances exactly."""
        return self.ledger_total == self.wallet_total

    @property
    def difference(self) -> Decimal:
        """Wallet total minus log total."""
        return self.wallet_total - self.ledger_total


class LedgerTransaction:
    """
    Handle for one open ledger transaction.

    Exposes the repositories bound to the transaction's session and the
    balance/audit operations.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize transaction handle.

        Args:
            session: Session with an open transaction
        """
        self.session = session
        self.users = UserRepository(session)
        self.referrals = ReferralRepository(session)
        self.tiers = VipTierRepository(session)
        self.commissions = CommissionRepository(session)
        self.records = FinancialRecordRepository(session)
        self.deposits = DepositRepository(session)
        self.withdrawals = WithdrawalRepository(session)
        self.video_watches = VideoWatchRepository(session)
        self.task_completions = TaskCompletionRepository(session)

    async def get_user(self, user_id: int) -> User | None:
        """Get user by ID."""
        return await self.users.get_by_id(user_id)

    async def get_user_for_update(self, user_id: int) -> User | None:
        """
        Get user with a row lock (SELECT ... FOR UPDATE).

        SQLite has no row locks; there the BEGIN IMMEDIATE write lock
        already covers the whole transaction.
        """
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def require_user(self, user_id: int) -> User:
        """Get user or raise UserNotFound."""
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    async def update_balances(
        self,
        user_id: int,
        delta: BalanceDelta,
        record_type: FinancialRecordType,
        reference_id: str | None = None,
        reference_type: str | None = None,
        description: str | None = None,
    ) -> FinancialRecord:
        """
        Apply a balance delta and append its audit record.

        Debits are guarded in the same statement: the UPDATE only matches
        when the wallet holds at least the debited amount.

        Args:
            user_id: User whose balances change
            delta: Signed column deltas
            record_type: Audit record type
            reference_id: ID of the triggering entity
            reference_type: Kind of the triggering entity
            description: Free text for admins

        Returns:
            Appended FinancialRecord with real before/after values

        Raises:
            UserNotFound: Unknown user
            InsufficientBalance: Debit larger than the wallet balance
        """
        wallet = delta.wallet
        require_income = -delta.income if delta.income < ZERO else None
        require_personal = -delta.personal if delta.personal < ZERO else None

        snapshot = await self.users.increment_balances(
            user_id,
            income=delta.income,
            personal=delta.personal,
            invested=delta.invested,
            earnings=delta.total_earnings,
            require_income=require_income,
            require_personal=require_personal,
        )
        if snapshot is None:
            await self.require_user(user_id)
            raise InsufficientBalance(
                f"User {user_id} {wallet.value} balance is lower than "
                f"{abs(delta.amount)}"
            )

        balance_after = (
            snapshot.income_balance
            if wallet is WalletType.INCOME
            else snapshot.personal_balance
        )
        return await self.append_financial_record(
            user_id=user_id,
            record_type=record_type,
            amount=delta.amount,
            wallet=wallet,
            balance_before=balance_after - delta.amount,
            balance_after=balance_after,
            reference_id=reference_id,
            reference_type=reference_type,
            description=description,
        )

    async def append_financial_record(
        self,
        user_id: int,
        record_type: FinancialRecordType,
        amount: Decimal,
        wallet: WalletType,
        balance_before: Decimal,
        balance_after: Decimal,
        reference_id: str | None = None,
        reference_type: str | None = None,
        description: str | None = None,
    ) -> FinancialRecord:
        """Append one audit record. Use update_balances for money moves."""
        return await self.records.create(
            user_id=user_id,
            type=record_type.value,
            amount=amount,
            wallet=wallet.value,
            balance_before=balance_before,
            balance_after=balance_after,
            reference_id=reference_id,
            reference_type=reference_type,
            description=description,
        )

    async def get_ancestor_chain(
        self, user_id: int, active_only: bool = True
    ) -> list[AncestorLink]:
        """Get ordered [(ancestor_id, level)] for a user, at most 4 long."""
        return await self.referrals.get_ancestor_chain(user_id, active_only)

    async def reconcile(self, user_id: int) -> ReconciliationResult:
        """
        Compare the audit log against the user's wallets.

        Raises:
            UserNotFound: Unknown user
        """
        user = await self.require_user(user_id)
        ledger_total = await self.records.sum_for_user(user_id)
        return ReconciliationResult(
            user_id=user_id,
            ledger_total=ledger_total,
            wallet_total=user.income_balance + user.personal_balance,
        )


class LedgerStore:
    """
    Factory of ledger transactions.

    Example:
        ledger = LedgerStore(session_maker)

        async def credit(tx: LedgerTransaction) -> FinancialRecord:
            return await tx.update_balances(...)

        record = await ledger.run(credit)
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        retry_attempts: int | None = None,
    ) -> None:
        """
        Initialize ledger store.

        Args:
            session_maker: Session factory (expire_on_commit=False)
            retry_attempts: Override for settings.transaction_retry_attempts
        """
        self.session_maker = session_maker
        self.retry_attempts = (
            retry_attempts
            if retry_attempts is not None
            else settings.transaction_retry_attempts
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[LedgerTransaction]:
        """
        Open a transaction: commit on success, rollback on any exception.

        Raises:
            TransactionConflict: Serialization conflict
            LedgerWriteFailed: Other database failure
            IntegrityError: Constraint violation (unchanged)
        """
        try:
            async with self.session_maker() as session, session.begin():
                yield LedgerTransaction(session)
        except IntegrityError:
            raise
        except DBAPIError as e:
            if _is_conflict(e):
                raise TransactionConflict(str(e.orig)) from e
            raise LedgerWriteFailed(str(e)) from e
        except SQLAlchemyError as e:
            raise LedgerWriteFailed(str(e)) from e

    async def run(self, fn: Callable[[LedgerTransaction], Awaitable[T]]) -> T:
        """
        Run fn inside a transaction, retrying on TransactionConflict.

        fn must be safe to re-run from scratch: each attempt gets a new
        transaction and nothing from a failed attempt is kept.

        Args:
            fn: Async callable receiving the transaction handle

        Returns:
            Whatever fn returns
        """
        attempt = 1
        while True:
            try:
                async with self.transaction() as tx:
                    return await fn(tx)
            except TransactionConflict as e:
                if attempt >= self.retry_attempts:
                    logger.error(
                        "Ledger transaction conflict, giving up",
                        extra={"attempts": attempt, "error": str(e)},
                    )
                    raise
                logger.warning(
                    "Ledger transaction conflict, retrying",
                    extra={"attempt": attempt, "error": str(e)},
                )
                await asyncio.sleep(0.05 * attempt)
                attempt += 1

    async def reconcile(self, user_id: int) -> ReconciliationResult:
        """Reconcile one user's audit log against their wallets."""
        return await self.run(lambda tx: tx.reconcile(user_id))
