"""
Withdrawal service.

VIP members withdraw from the income wallet. The amount is debited
when the request is made; a rejected request is refunded.
"""

from decimal import Decimal

from earnhub.config.settings import settings
from earnhub.models.enums import (
    FinancialRecordType,
    WithdrawalStatus,
)
from earnhub.models.withdrawal import WithdrawalRequest
from earnhub.services.base_service import BaseService, log_operation
from earnhub.services.ledger.store import BalanceDelta, LedgerTransaction
from earnhub.utils.exceptions import (
    InvalidAmount,
    InvalidStateTransition,
    OperationError,
    VipRequired,
)
from earnhub.utils.money import to_decimal


class WithdrawalService(BaseService):
    """Withdrawal request lifecycle."""

    @log_operation
    async def request_withdrawal(
        self, user_id: int, amount: Decimal, account: str
    ) -> WithdrawalRequest:
        """
        Create a withdrawal request and debit the income wallet.

        Args:
            user_id: User ID
            amount: Amount to withdraw
            account: Payout account details

        Returns:
            Pending withdrawal request

        Raises:
            InvalidAmount: Below settings.min_withdrawal_amount
            VipRequired: User holds no VIP tier
            InsufficientBalance: Income balance lower than amount
        """
        amount = to_decimal(amount)
        if amount < settings.min_withdrawal_amount:
            raise InvalidAmount(
                f"Minimum withdrawal is {settings.min_withdrawal_amount} "
                f"{settings.currency}"
            )

        async def _request(tx: LedgerTransaction) -> WithdrawalRequest:
            user = await tx.require_user(user_id)
            if not user.is_active:
                raise OperationError(f"User {user_id} is {user.status}")
            if not user.is_vip:
                raise VipRequired("Withdrawals require a VIP tier")

            withdrawal = await tx.withdrawals.create(
                user_id=user_id,
                amount=amount,
                account=account,
                status=WithdrawalStatus.PENDING.value,
            )
            await tx.update_balances(
                user_id,
                BalanceDelta(income=-amount),
                FinancialRecordType.WITHDRAWAL,
                reference_id=str(withdrawal.id),
                reference_type="withdrawal",
            )
            return withdrawal

        return await self.run(_request)

    async def approve_withdrawal(
        self, withdrawal_id: int, note: str | None = None
    ) -> WithdrawalRequest:
        """
        Mark a pending request as paid. The debit already happened.

        Raises:
            OperationError: Unknown request
            InvalidStateTransition: Request is not pending
        """

        async def _approve(tx: LedgerTransaction) -> WithdrawalRequest:
            return await self._finish(
                tx, withdrawal_id, WithdrawalStatus.PAID, note
            )

        withdrawal = await self.run(_approve)
        self.logger.info(
            "Withdrawal paid",
            extra={"withdrawal_id": withdrawal_id, "amount": str(withdrawal.amount)},
        )
        return withdrawal

    async def reject_withdrawal(
        self, withdrawal_id: int, note: str | None = None
    ) -> WithdrawalRequest:
        """
        Reject a pending request and refund the income wallet.

        Raises:
            OperationError: Unknown request
            InvalidStateTransition: Request is not pending
        """

        async def _reject(tx: LedgerTransaction) -> WithdrawalRequest:
            withdrawal = await self._finish(
                tx, withdrawal_id, WithdrawalStatus.REJECTED, note
            )
            await tx.update_balances(
                withdrawal.user_id,
                BalanceDelta(income=withdrawal.amount),
                FinancialRecordType.WITHDRAWAL_REFUND,
                reference_id=str(withdrawal.id),
                reference_type="withdrawal",
                description=note,
            )
            return withdrawal

        withdrawal = await self.run(_reject)
        self.logger.info(
            "Withdrawal rejected and refunded",
            extra={"withdrawal_id": withdrawal_id, "amount": str(withdrawal.amount)},
        )
        return withdrawal

    async def _finish(
        self,
        tx: LedgerTransaction,
        withdrawal_id: int,
        status: WithdrawalStatus,
        note: str | None,
    ) -> WithdrawalRequest:
        withdrawal = await tx.withdrawals.get_by_id(withdrawal_id)
        if withdrawal is None:
            raise OperationError(f"Withdrawal {withdrawal_id} not found")
        if not await tx.withdrawals.finish(withdrawal_id, status, note):
            raise InvalidStateTransition(
                f"Withdrawal {withdrawal_id} is {withdrawal.status}, not pending"
            )
        return await tx.withdrawals.refresh(withdrawal)
