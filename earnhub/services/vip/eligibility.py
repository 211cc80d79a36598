"""
VIP eligibility evaluator.

Raises a user's VIP tier to the highest tier their cumulative
investment covers. Tiers never go down automatically.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from earnhub.models.commission import CommissionRecord
from earnhub.models.enums import (
    FinancialRecordType,
    SettlementEventType,
    WalletType,
)
from earnhub.models.vip_tier import VipTier
from earnhub.services.base_service import BaseService
from earnhub.services.ledger.store import LedgerStore, LedgerTransaction
from earnhub.services.referral.settlement import CommissionSettlementService
from earnhub.utils.exceptions import EarnhubError


@dataclass
class UpgradeResult:
    """Outcome of an upgrade evaluation."""

    upgraded: bool
    new_tier: VipTier | None = None
    previous_tier: VipTier | None = None
    commissions: list[CommissionRecord] = field(default_factory=list)


def upgrade_event_id(user_id: int, rank: int) -> str:
    """Settlement key for reaching a rank; a rank is crossed once."""
    return f"vip_upgrade:{user_id}:{rank}"


class VipEligibilityEvaluator(BaseService):
    """Evaluates and applies automatic VIP upgrades."""

    def __init__(
        self,
        ledger: LedgerStore,
        settlement: CommissionSettlementService | None = None,
    ) -> None:
        """
        Initialize evaluator.

        Args:
            ledger: Ledger store
            settlement: Commission settlement for upgrade commissions
        """
        super().__init__(ledger)
        self.settlement = settlement or CommissionSettlementService(ledger)

    async def evaluate_upgrade(
        self,
        user_id: int,
        trigger_amount: Decimal | None = None,
        reference_id: str | None = None,
    ) -> UpgradeResult:
        """
        Upgrade the user if a higher tier is now affordable.

        The tier write is conditional (vip_rank < new rank), so of two
        racing evaluations only one upgrades and only that one settles
        upgrade commission. A commission failure after the tier write is
        logged and does not undo the upgrade.

        Args:
            user_id: User to evaluate
            trigger_amount: Investment that caused the evaluation;
                upgrade commission is computed on it. None skips commission.
            reference_id: ID of the triggering entity (e.g. deposit)

        Returns:
            UpgradeResult

        Raises:
            UserNotFound: Unknown user
        """

        async def _apply(
            tx: LedgerTransaction,
        ) -> tuple[VipTier, VipTier | None] | None:
            return await self._apply_upgrade(tx, user_id, reference_id)

        outcome = await self.run(_apply)
        if outcome is None:
            return UpgradeResult(upgraded=False)

        new_tier, previous_tier = outcome
        self.logger.info(
            "VIP tier upgraded",
            extra={
                "user_id": user_id,
                "previous_rank": previous_tier.rank if previous_tier else 0,
                "new_rank": new_tier.rank,
                "new_tier": new_tier.name,
                "reference_id": reference_id,
            },
        )
        result = UpgradeResult(
            upgraded=True, new_tier=new_tier, previous_tier=previous_tier
        )

        if trigger_amount is None or trigger_amount <= 0:
            return result

        try:
            result.commissions = await self.settlement.settle_earning(
                user_id,
                trigger_amount,
                SettlementEventType.DEPOSIT_UPGRADE,
                upgrade_event_id(user_id, new_tier.rank),
            )
        except EarnhubError as e:
            self.logger.opt(exception=e).error(
                "Upgrade commission settlement failed, tier kept; "
                "manual reconciliation required",
                extra={
                    "user_id": user_id,
                    "new_rank": new_tier.rank,
                    "trigger_amount": str(trigger_amount),
                },
            )
        return result

    async def _apply_upgrade(
        self,
        tx: LedgerTransaction,
        user_id: int,
        reference_id: str | None,
    ) -> tuple[VipTier, VipTier | None] | None:
        user = await tx.require_user(user_id)

        target = await tx.tiers.get_highest_affordable(user.invested_total)
        if target is None or target.rank <= user.vip_rank:
            return None

        previous = await tx.tiers.get_by_rank(user.vip_rank)
        if not await tx.users.raise_vip_rank(user_id, target.rank):
            # Another evaluation got there first
            return None

        await tx.append_financial_record(
            user_id=user_id,
            record_type=FinancialRecordType.VIP_UPGRADE,
            amount=Decimal("0"),
            wallet=WalletType.PERSONAL,
            balance_before=user.personal_balance,
            balance_after=user.personal_balance,
            reference_id=reference_id,
            reference_type="vip_upgrade",
            description=(
                f"{previous.name if previous else 'No tier'} -> {target.name}"
            ),
        )
        return target, previous

