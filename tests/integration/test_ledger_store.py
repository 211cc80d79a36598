"""
Integration tests for the ledger store.

Covers:
- Paired balance update and audit record with real before/after
- Guarded debits
- Rollback on error
- Conflict retry
- Reconciliation
"""

import asyncio
from decimal import Decimal

import pytest

from earnhub.models import FinancialRecordType
from earnhub.services.ledger.store import BalanceDelta, LedgerStore
from earnhub.utils.exceptions import (
    InsufficientBalance,
    TransactionConflict,
    UserNotFound,
)


class TestUpdateBalances:
    """Test LedgerTransaction.update_balances."""

    @pytest.mark.asyncio
    async def test_record_has_real_before_and_after(self, make_user, ledger):
        """Test before/after come from the actual balance, not placeholders."""
        user = await make_user(income=Decimal("40"))

        record = await ledger.run(
            lambda tx: tx.update_balances(
                user.id,
                BalanceDelta(income=Decimal("200"), total_earnings=Decimal("200")),
                FinancialRecordType.VIDEO_REWARD,
                reference_id="video:1",
            )
        )

        assert record.balance_before == Decimal("40.00")
        assert record.balance_after == Decimal("240.00")
        assert record.amount == Decimal("200")
        assert record.wallet == "income"

    @pytest.mark.asyncio
    async def test_debit_guard(self, make_user, ledger, reload):
        """Test a debit larger than the wallet is refused and nothing moves."""
        user = await make_user(income=Decimal("100"))

        with pytest.raises(InsufficientBalance):
            await ledger.run(
                lambda tx: tx.update_balances(
                    user.id,
                    BalanceDelta(income=Decimal("-100.01")),
                    FinancialRecordType.WITHDRAWAL,
                )
            )

        assert (await reload(user.id)).income_balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_unknown_user(self, ledger):
        """Test unknown user."""
        with pytest.raises(UserNotFound):
            await ledger.run(
                lambda tx: tx.update_balances(
                    31337,
                    BalanceDelta(income=Decimal("1")),
                    FinancialRecordType.TASK_REWARD,
                )
            )

    @pytest.mark.asyncio
    async def test_error_rolls_back_balance_and_record(
        self, make_user, ledger, reload
    ):
        """Test a failure after the update leaves no trace."""
        user = await make_user()

        async def credit_then_fail(tx):
            await tx.update_balances(
                user.id,
                BalanceDelta(income=Decimal("10")),
                FinancialRecordType.TASK_REWARD,
            )
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await ledger.run(credit_then_fail)

        assert (await reload(user.id)).income_balance == Decimal("0")
        records = await ledger.run(lambda tx: tx.records.get_for_user(user.id))
        assert records == []

    @pytest.mark.asyncio
    async def test_concurrent_credits_are_not_lost(
        self, make_user, ledger, reload
    ):
        """Test parallel increments all land."""
        user = await make_user()

        async def credit():
            await ledger.run(
                lambda tx: tx.update_balances(
                    user.id,
                    BalanceDelta(income=Decimal("1.25")),
                    FinancialRecordType.COMMISSION,
                )
            )

        await asyncio.gather(*(credit() for _ in range(8)))

        assert (await reload(user.id)).income_balance == Decimal("10.00")
        assert (await ledger.reconcile(user.id)).is_balanced


class TestRetry:
    """Test LedgerStore.run conflict retry."""

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, ledger):
        """Test a transient conflict succeeds on the next attempt."""
        attempts = []

        async def flaky(tx):
            attempts.append(1)
            if len(attempts) == 1:
                raise TransactionConflict("could not serialize access")
            return "ok"

        assert await ledger.run(flaky) == "ok"
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, session_maker):
        """Test the conflict surfaces after retry_attempts tries."""
        ledger = LedgerStore(session_maker, retry_attempts=2)
        attempts = []

        async def always_conflicts(tx):
            attempts.append(1)
            raise TransactionConflict("deadlock detected")

        with pytest.raises(TransactionConflict):
            await ledger.run(always_conflicts)
        assert len(attempts) == 2


class TestReconcile:
    """Test reconciliation."""

    @pytest.mark.asyncio
    async def test_unaudited_change_is_detected(self, make_user, ledger):
        """Test a raw balance change without a record shows as a gap."""
        user = await make_user(income=Decimal("5"))

        await ledger.run(
            lambda tx: tx.users.increment_balances(user.id, income=Decimal("3"))
        )

        result = await ledger.reconcile(user.id)
        assert result.is_balanced is False
        assert result.difference == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_unknown_user(self, ledger):
        """Test reconcile of unknown user raises."""
        with pytest.raises(UserNotFound):
            await ledger.reconcile(404)
