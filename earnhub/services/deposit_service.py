"""
Deposit service.

Manually verified deposits: a user submits a payment proof, an admin
approves or rejects it. Approval credits the personal wallet and the
investment total, then evaluates a VIP upgrade.
"""

from dataclasses import dataclass
from decimal import Decimal

from earnhub.config.settings import settings
from earnhub.models.deposit import Deposit
from earnhub.models.enums import DepositStatus, FinancialRecordType
from earnhub.services.base_service import BaseService, log_operation
from earnhub.services.ledger.store import (
    BalanceDelta,
    LedgerStore,
    LedgerTransaction,
)
from earnhub.services.vip.eligibility import (
    UpgradeResult,
    VipEligibilityEvaluator,
)
from earnhub.utils.exceptions import (
    EarnhubError,
    InvalidAmount,
    InvalidStateTransition,
    OperationError,
)
from earnhub.utils.money import to_decimal


@dataclass
class DepositApproval:
    """Approved deposit with the resulting upgrade evaluation."""

    deposit: Deposit
    upgrade: UpgradeResult


class DepositService(BaseService):
    """Deposit request lifecycle."""

    def __init__(
        self,
        ledger: LedgerStore,
        evaluator: VipEligibilityEvaluator | None = None,
    ) -> None:
        """
        Initialize deposit service.

        Args:
            ledger: Ledger store
            evaluator: VIP eligibility evaluator
        """
        super().__init__(ledger)
        self.evaluator = evaluator or VipEligibilityEvaluator(ledger)

    async def create_deposit(
        self,
        user_id: int,
        amount: Decimal,
        payment_method: str,
        proof_reference: str | None = None,
    ) -> Deposit:
        """
        Submit a deposit for verification.

        Args:
            user_id: Depositing user
            amount: Deposited amount
            payment_method: e.g. "easypaisa", "bank"
            proof_reference: Reference of the uploaded payment proof

        Returns:
            Pending deposit

        Raises:
            InvalidAmount: Below settings.min_deposit_amount
            UserNotFound: Unknown user
        """
        amount = to_decimal(amount)
        if amount < settings.min_deposit_amount:
            raise InvalidAmount(
                f"Minimum deposit is {settings.min_deposit_amount} "
                f"{settings.currency}"
            )

        async def _create(tx: LedgerTransaction) -> Deposit:
            await tx.require_user(user_id)
            return await tx.deposits.create(
                user_id=user_id,
                amount=amount,
                payment_method=payment_method,
                proof_reference=proof_reference,
                status=DepositStatus.PENDING.value,
            )

        deposit = await self.run(_create)
        self.logger.info(
            "Deposit submitted",
            extra={
                "deposit_id": deposit.id,
                "user_id": user_id,
                "amount": str(amount),
            },
        )
        return deposit

    @log_operation
    async def approve_deposit(
        self, deposit_id: int, admin_note: str | None = None
    ) -> DepositApproval:
        """
        Approve a pending deposit.

        The status change, the wallet credit and its audit record commit
        together. The upgrade evaluation runs afterwards in its own
        transaction.

        Raises:
            OperationError: Unknown deposit
            InvalidStateTransition: Deposit is not pending
        """

        async def _approve(tx: LedgerTransaction) -> Deposit:
            deposit = await tx.deposits.get_by_id(deposit_id)
            if deposit is None:
                raise OperationError(f"Deposit {deposit_id} not found")
            if not await tx.deposits.finish(
                deposit_id, DepositStatus.APPROVED, admin_note
            ):
                raise InvalidStateTransition(
                    f"Deposit {deposit_id} is {deposit.status}, not pending"
                )
            await tx.update_balances(
                deposit.user_id,
                BalanceDelta(personal=deposit.amount, invested=deposit.amount),
                FinancialRecordType.DEPOSIT,
                reference_id=str(deposit.id),
                reference_type="deposit",
                description=f"Deposit via {deposit.payment_method}",
            )
            await tx.deposits.refresh(deposit)
            return deposit

        deposit = await self.run(_approve)
        self.logger.info(
            "Deposit approved",
            extra={
                "deposit_id": deposit.id,
                "user_id": deposit.user_id,
                "amount": str(deposit.amount),
            },
        )

        try:
            upgrade = await self.evaluator.evaluate_upgrade(
                deposit.user_id,
                trigger_amount=deposit.amount,
                reference_id=str(deposit.id),
            )
        except EarnhubError as e:
            # Deposit and credit are already committed
            self.logger.opt(exception=e).error(
                "VIP evaluation after deposit failed, manual reconciliation required",
                extra={
                    "deposit_id": deposit.id,
                    "user_id": deposit.user_id,
                    "amount": str(deposit.amount),
                },
            )
            upgrade = UpgradeResult(upgraded=False)
        return DepositApproval(deposit=deposit, upgrade=upgrade)

    async def reject_deposit(
        self, deposit_id: int, admin_note: str | None = None
    ) -> Deposit:
        """
        Reject a pending deposit. No balance changes.

        Raises:
            OperationError: Unknown deposit
            InvalidStateTransition: Deposit is not pending
        """

        async def _reject(tx: LedgerTransaction) -> Deposit:
            deposit = await tx.deposits.get_by_id(deposit_id)
            if deposit is None:
                raise OperationError(f"Deposit {deposit_id} not found")
            if not await tx.deposits.finish(
                deposit_id, DepositStatus.REJECTED, admin_note
            ):
                raise InvalidStateTransition(
                    f"Deposit {deposit_id} is {deposit.status}, not pending"
                )
            await tx.deposits.refresh(deposit)
            return deposit

        deposit = await self.run(_reject)
        self.logger.info(
            "Deposit rejected",
            extra={"deposit_id": deposit_id, "admin_note": admin_note},
        )
        return deposit
