"""
Integration tests for the user-facing flows.

Covers:
- Signup with and without a valid referral code
- Soft ban and reactivation
- Deposit approval and rejection
- Video watches with daily limits and trial
- Task completion (no commission)
- Withdrawal request, payout and refund
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from earnhub.config.settings import settings
from earnhub.models import FinancialRecordType
from earnhub.utils.datetime_utils import utc_today
from earnhub.utils.exceptions import (
    AlreadyCompleted,
    DailyLimitReached,
    InsufficientBalance,
    InvalidAmount,
    InvalidStateTransition,
    OperationError,
    TransactionConflict,
    VipRequired,
)


class TestUserService:
    """Test registration and status."""

    @pytest.mark.asyncio
    async def test_register_with_code(self, user_service, make_user):
        """Test signup attaches to the code owner."""
        parent = await make_user()

        user = await user_service.register(
            "alice", phone="+920000000", referral_code=parent.referral_code
        )

        assert user.referrer_id == parent.id
        assert len(user.referral_code) == settings.referral_code_length
        assert user.trial_ends_on == utc_today() + timedelta(
            days=settings.trial_days
        )

    @pytest.mark.asyncio
    async def test_invalid_code_does_not_block_signup(self, user_service):
        """Test signup proceeds without referrer on a bad code."""
        user = await user_service.register("bob", referral_code="BADCODE9")

        assert user.id is not None
        assert user.referrer_id is None

    @pytest.mark.asyncio
    async def test_attach_storage_failure_keeps_signup(
        self, user_service, make_user, monkeypatch
    ):
        """Test a failing attachment write does not fail the signup."""
        parent = await make_user()

        async def conflicting_attach(*args, **kwargs):
            raise TransactionConflict("database is locked")

        monkeypatch.setattr(user_service.attachment, "attach", conflicting_attach)

        user = await user_service.register("dave", referral_code=parent.referral_code)

        assert user.id is not None
        assert user.referrer_id is None

    @pytest.mark.asyncio
    async def test_duplicate_username(self, user_service):
        """Test usernames are unique."""
        await user_service.register("carol")

        with pytest.raises(ValueError):
            await user_service.register("carol")

    @pytest.mark.asyncio
    async def test_ban_and_reactivate_edges(
        self, user_service, make_user, refer, ledger
    ):
        """Test ban marks ancestor edges inactive and reactivation restores."""
        parent = await make_user(vip_rank=1)
        child = await make_user()
        await refer(child, parent)

        banned = await user_service.set_status(parent.id, "banned")
        chain = await ledger.run(lambda tx: tx.get_ancestor_chain(child.id))
        assert banned.status == "banned"
        assert chain == []

        await user_service.set_status(parent.id, "active")
        chain = await ledger.run(lambda tx: tx.get_ancestor_chain(child.id))
        assert [link.ancestor_id for link in chain] == [parent.id]

    @pytest.mark.asyncio
    async def test_get_vip_tier(self, user_service, make_user):
        """Test tier lookup."""
        vip = await make_user(vip_rank=2)
        plain = await make_user()

        assert (await user_service.get_vip_tier(vip.id)).name == "VIP2"
        assert await user_service.get_vip_tier(plain.id) is None


class TestDepositService:
    """Test deposit lifecycle."""

    @pytest.mark.asyncio
    async def test_approve_credits_and_upgrades(
        self, deposit_service, make_user, refer, reload, ledger
    ):
        """Test approval credits personal/invested and pays upgrade commission."""
        parent = await make_user(vip_rank=1)
        user = await make_user()
        await refer(user, parent)

        deposit = await deposit_service.create_deposit(
            user.id, Decimal("2000"), "easypaisa", "proof-1"
        )
        approval = await deposit_service.approve_deposit(deposit.id, "ok")

        assert approval.deposit.status == "approved"
        assert approval.deposit.processed_at is not None
        assert approval.upgrade.upgraded is True
        assert approval.upgrade.new_tier.name == "VIP1"

        refreshed = await reload(user.id)
        assert refreshed.personal_balance == Decimal("2000.00")
        assert refreshed.invested_total == Decimal("2000.00")
        assert refreshed.vip_rank == 1
        assert (await reload(parent.id)).income_balance == Decimal("200.00")
        assert (await ledger.reconcile(user.id)).is_balanced
        assert (await ledger.reconcile(parent.id)).is_balanced

    @pytest.mark.asyncio
    async def test_double_approval_refused(self, deposit_service, make_user, reload):
        """Test a deposit is credited once."""
        user = await make_user()
        deposit = await deposit_service.create_deposit(user.id, Decimal("500"), "bank")
        await deposit_service.approve_deposit(deposit.id)

        with pytest.raises(InvalidStateTransition):
            await deposit_service.approve_deposit(deposit.id)
        assert (await reload(user.id)).personal_balance == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_failed_evaluation_keeps_approval(
        self, deposit_service, make_user, reload, monkeypatch
    ):
        """Test approval succeeds when the tier evaluation cannot be written."""
        user = await make_user()
        deposit = await deposit_service.create_deposit(user.id, Decimal("5000"), "bank")

        async def conflicting_evaluation(*args, **kwargs):
            raise TransactionConflict("could not serialize access")

        monkeypatch.setattr(
            deposit_service.evaluator, "evaluate_upgrade", conflicting_evaluation
        )

        approval = await deposit_service.approve_deposit(deposit.id)

        assert approval.deposit.status == "approved"
        assert approval.upgrade.upgraded is False
        assert (await reload(user.id)).personal_balance == Decimal("5000.00")

    @pytest.mark.asyncio
    async def test_reject(self, deposit_service, make_user, reload):
        """Test rejection moves no money and is final."""
        user = await make_user()
        deposit = await deposit_service.create_deposit(user.id, Decimal("500"), "bank")

        rejected = await deposit_service.reject_deposit(deposit.id, "blurry proof")

        assert rejected.status == "rejected"
        assert (await reload(user.id)).personal_balance == Decimal("0")
        with pytest.raises(InvalidStateTransition):
            await deposit_service.approve_deposit(deposit.id)

    @pytest.mark.asyncio
    async def test_minimum_amount(self, deposit_service, make_user):
        """Test deposits below the minimum are refused."""
        user = await make_user()

        with pytest.raises(InvalidAmount):
            await deposit_service.create_deposit(user.id, Decimal("99.99"), "bank")

    @pytest.mark.asyncio
    async def test_unknown_deposit(self, deposit_service):
        """Test unknown deposit id."""
        with pytest.raises(OperationError):
            await deposit_service.approve_deposit(9999)


class TestVideoService:
    """Test video rewards."""

    @pytest.mark.asyncio
    async def test_same_video_once_per_day(self, video_service, make_user):
        """Test a second watch of the same video today is refused."""
        user = await make_user(vip_rank=1)
        await video_service.watch_video(user.id, "v1", Decimal("10"))

        with pytest.raises(AlreadyCompleted):
            await video_service.watch_video(user.id, "v1", Decimal("10"))

    @pytest.mark.asyncio
    async def test_tier_daily_limit(self, video_service, make_user, reload):
        """Test VIP1 allows five videos a day."""
        user = await make_user(vip_rank=1)
        for n in range(5):
            await video_service.watch_video(user.id, f"v{n}", Decimal("10"))

        with pytest.raises(DailyLimitReached) as exc_info:
            await video_service.watch_video(user.id, "v6", Decimal("10"))

        assert exc_info.value.limit == 5
        assert exc_info.value.used == 5
        assert (await reload(user.id)).income_balance == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_trial_limit(self, video_service, make_user, monkeypatch):
        """Test trial users get the trial allowance."""
        monkeypatch.setattr(settings, "trial_daily_video_limit", 1)
        user = await make_user(trial_ends_on=utc_today())
        await video_service.watch_video(user.id, "v1", Decimal("10"))

        with pytest.raises(DailyLimitReached):
            await video_service.watch_video(user.id, "v2", Decimal("10"))

    @pytest.mark.asyncio
    async def test_no_tier_no_trial_no_videos(self, video_service, make_user):
        """Test expired trial without tier has no allowance."""
        user = await make_user(trial_ends_on=utc_today() - timedelta(days=1))

        with pytest.raises(DailyLimitReached):
            await video_service.watch_video(user.id, "v1", Decimal("10"))

    @pytest.mark.asyncio
    async def test_stale_counter_is_reset(
        self, video_service, make_user, ledger
    ):
        """Test yesterday's count does not block today."""
        user = await make_user(vip_rank=1)

        async def used_up_yesterday(tx):
            row = await tx.get_user_for_update(user.id)
            row.daily_video_count = 5
            row.counters_reset_on = utc_today() - timedelta(days=1)

        await ledger.run(used_up_yesterday)

        result = await video_service.watch_video(user.id, "v1", Decimal("10"))
        assert result.watch.id is not None

    @pytest.mark.asyncio
    async def test_settlement_failure_does_not_fail_watch(
        self, video_service, make_user, refer, reload, monkeypatch
    ):
        """Test the watcher is credited even when commission posting breaks."""
        parent = await make_user(vip_rank=1)
        user = await make_user(vip_rank=1)
        await refer(user, parent)

        async def broken_settle(*args, **kwargs):
            raise InvalidAmount("broken")

        monkeypatch.setattr(video_service.settlement, "settle_earning", broken_settle)

        result = await video_service.watch_video(user.id, "v1", Decimal("10"))

        assert result.commissions == []
        assert (await reload(user.id)).income_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_watch_record_is_audited(self, video_service, make_user, ledger):
        """Test the reward has a video_reward record keyed by the watch."""
        user = await make_user(vip_rank=1)

        result = await video_service.watch_video(user.id, "v1", Decimal("12.50"))

        records = await ledger.run(
            lambda tx: tx.records.get_for_user(
                user.id, FinancialRecordType.VIDEO_REWARD.value
            )
        )
        assert [r.reference_id for r in records] == [result.watch.event_id]
        assert records[0].balance_before == Decimal("0.00")
        assert records[0].balance_after == Decimal("12.50")


class TestTaskService:
    """Test task rewards."""

    @pytest.mark.asyncio
    async def test_task_pays_tier_reward_without_commission(
        self, task_service, make_user, refer, reload, ledger
    ):
        """Test task reward credited, ancestors untouched."""
        parent = await make_user(vip_rank=3)
        user = await make_user(vip_rank=2)
        await refer(user, parent)

        completion = await task_service.complete_task(user.id, "t1")

        assert completion.reward_amount == Decimal("25")
        assert (await reload(user.id)).income_balance == Decimal("25.00")
        assert (await reload(parent.id)).income_balance == Decimal("0")
        commissions = await ledger.run(
            lambda tx: tx.commissions.find_by(beneficiary_id=parent.id)
        )
        assert commissions == []

    @pytest.mark.asyncio
    async def test_task_once_per_day(self, task_service, make_user):
        """Test repeat completion is refused."""
        user = await make_user(vip_rank=1)
        await task_service.complete_task(user.id, "t1")

        with pytest.raises(AlreadyCompleted):
            await task_service.complete_task(user.id, "t1")

    @pytest.mark.asyncio
    async def test_non_vip_has_no_tasks_by_default(self, task_service, make_user):
        """Test free task limit defaults to zero."""
        user = await make_user()

        with pytest.raises(DailyLimitReached):
            await task_service.complete_task(user.id, "t1")

    @pytest.mark.asyncio
    async def test_banned_user(self, task_service, make_user):
        """Test inactive users cannot earn."""
        user = await make_user(vip_rank=1, status="banned")

        with pytest.raises(OperationError):
            await task_service.complete_task(user.id, "t1")


class TestWithdrawalService:
    """Test withdrawal lifecycle."""

    @pytest.mark.asyncio
    async def test_request_debits_and_approve_pays(
        self, withdrawal_service, make_user, reload, ledger
    ):
        """Test debit at request time and PAID on approval."""
        user = await make_user(vip_rank=1, income=Decimal("800"))

        request = await withdrawal_service.request_withdrawal(
            user.id, Decimal("500"), "PK00BANK0001"
        )
        assert (await reload(user.id)).income_balance == Decimal("300.00")

        paid = await withdrawal_service.approve_withdrawal(request.id)
        assert paid.status == "paid"
        assert (await reload(user.id)).income_balance == Decimal("300.00")
        assert (await ledger.reconcile(user.id)).is_balanced

    @pytest.mark.asyncio
    async def test_reject_refunds(self, withdrawal_service, make_user, reload, ledger):
        """Test rejection refunds with a withdrawal_refund record."""
        user = await make_user(vip_rank=1, income=Decimal("600"))
        request = await withdrawal_service.request_withdrawal(
            user.id, Decimal("600"), "acct"
        )

        rejected = await withdrawal_service.reject_withdrawal(request.id, "wrong account")

        assert rejected.status == "rejected"
        assert (await reload(user.id)).income_balance == Decimal("600.00")
        refunds = await ledger.run(
            lambda tx: tx.records.get_for_user(
                user.id, FinancialRecordType.WITHDRAWAL_REFUND.value
            )
        )
        assert len(refunds) == 1
        with pytest.raises(InvalidStateTransition):
            await withdrawal_service.approve_withdrawal(request.id)

    @pytest.mark.asyncio
    async def test_requires_vip(self, withdrawal_service, make_user):
        """Test non-VIP users cannot withdraw."""
        user = await make_user(income=Decimal("1000"))

        with pytest.raises(VipRequired):
            await withdrawal_service.request_withdrawal(user.id, Decimal("500"), "acct")

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, withdrawal_service, make_user, ledger):
        """Test overdraft is refused and no request is left behind."""
        user = await make_user(vip_rank=1, income=Decimal("499"))

        with pytest.raises(InsufficientBalance):
            await withdrawal_service.request_withdrawal(user.id, Decimal("500"), "acct")

        requests = await ledger.run(lambda tx: tx.withdrawals.find_by(user_id=user.id))
        assert requests == []

    @pytest.mark.asyncio
    async def test_minimum_amount(self, withdrawal_service, make_user):
        """Test minimum withdrawal."""
        user = await make_user(vip_rank=1, income=Decimal("1000"))

        with pytest.raises(InvalidAmount):
            await withdrawal_service.request_withdrawal(user.id, Decimal("499"), "acct")
