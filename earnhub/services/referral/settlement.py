"""
Commission settlement service.

Pays commissions to the ancestors of a user who earned (video reward)
or upgraded (VIP tier crossing).

Each ancestor is posted in its own transaction: the commission row,
the balance increment and the audit record commit together, and a
failure at one level never undoes another level. The unique key
(event_id, beneficiary_id, level) makes repeated calls for the same
event harmless.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from sqlalchemy.exc import IntegrityError

from earnhub.config.constants import REFERRAL_LEVELS
from earnhub.models.commission import CommissionRecord
from earnhub.models.enums import (
    CommissionStatus,
    FinancialRecordType,
    SettlementEventType,
)
from earnhub.repositories.referral_repository import AncestorLink
from earnhub.services.base_service import BaseService
from earnhub.services.ledger.store import BalanceDelta, LedgerTransaction
from earnhub.utils.exceptions import EarnhubError, InvalidAmount
from earnhub.utils.money import calculate_commission, to_decimal


class SkipReason(str, Enum):
    """Why an ancestor level produced no commission."""

    NO_ANCESTOR = "no_ancestor"
    NOT_VIP = "not_vip"
    ZERO_RATE = "zero_rate"
    INACTIVE = "inactive"
    BELOW_MINOR_UNIT = "below_minor_unit"


@dataclass
class SettlementResult:
    """Outcome of settling one event across the ancestor chain."""

    event_id: str
    records: list[CommissionRecord] = field(default_factory=list)
    skipped: dict[str, SkipReason] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    duplicates: int = 0

    @property
    def total_paid(self) -> Decimal:
        """Sum of commission amounts in records."""
        return sum(
            (record.commission_amount for record in self.records),
            Decimal("0"),
        )

    @property
    def duplicate(self) -> bool:
        """True if the event had already been settled."""
        return self.duplicates > 0


class CommissionSettlementService(BaseService):
    """Settles referral commissions for earning and upgrade events."""

    async def settle_earning(
        self,
        source_user_id: int,
        base_amount: Decimal,
        event_type: SettlementEventType | str,
        event_id: str,
    ) -> list[CommissionRecord]:
        """
        Settle an event and return its commission records.

        On a repeated call the records created by the first call are
        returned and no balance moves again.

        Args:
            source_user_id: User whose action triggered the event
            base_amount: Amount commissions are computed on (> 0)
            event_type: "video" or "deposit_upgrade"
            event_id: Unique ID of the triggering action

        Returns:
            Commission records ordered by level
        """
        result = await self.settle(
            source_user_id, base_amount, event_type, event_id
        )
        return result.records

    async def settle(
        self,
        source_user_id: int,
        base_amount: Decimal,
        event_type: SettlementEventType | str,
        event_id: str,
    ) -> SettlementResult:
        """
        Settle an event and report posted, skipped and failed levels.

        Raises:
            InvalidAmount: base_amount is not positive
            ValueError: Unknown event type or empty event_id
        """
        event_type = SettlementEventType(event_type)
        base_amount = to_decimal(base_amount)
        if base_amount <= 0:
            raise InvalidAmount(f"Settlement base amount must be positive: {base_amount}")
        if not event_id:
            raise ValueError("event_id is required")

        result = SettlementResult(event_id=event_id)

        async def _load(
            tx: LedgerTransaction,
        ) -> tuple[list[CommissionRecord], list[AncestorLink]]:
            existing = await tx.commissions.get_for_event(event_id)
            chain = await tx.get_ancestor_chain(source_user_id)
            return existing, chain

        existing, chain = await self.run(_load)

        # Already settled levels are returned as they are, whatever the
        # ancestor's current status
        settled = {(record.beneficiary_id, record.level) for record in existing}
        result.records.extend(existing)
        result.duplicates = len(existing)
        if existing:
            self.logger.debug(
                "Event already settled",
                extra={"event_id": event_id, "records": len(existing)},
            )

        if not chain:
            if not existing:
                self.logger.debug(
                    "No ancestors to settle",
                    extra={"user_id": source_user_id, "event_id": event_id},
                )
                result.skipped[REFERRAL_LEVELS[0]] = SkipReason.NO_ANCESTOR
            return result

        for link in chain:
            if (link.ancestor_id, link.level) in settled:
                continue
            await self._settle_level(
                result, link, source_user_id, base_amount, event_type
            )
        result.records.sort(key=lambda record: record.level)

        self.logger.info(
            "Commission settlement finished",
            extra={
                "user_id": source_user_id,
                "event_id": event_id,
                "event_type": event_type.value,
                "records": len(result.records),
                "total_paid": str(result.total_paid),
                "skipped": {k: v.value for k, v in result.skipped.items()},
                "failed": result.failed,
                "duplicates": result.duplicates,
            },
        )
        return result

    async def _settle_level(
        self,
        result: SettlementResult,
        link: AncestorLink,
        source_user_id: int,
        base_amount: Decimal,
        event_type: SettlementEventType,
    ) -> None:
        """Post one ancestor in its own transaction and record the outcome."""

        async def _post(tx: LedgerTransaction) -> CommissionRecord | SkipReason:
            return await self._post_commission(
                tx, link, source_user_id, base_amount, event_type, result.event_id
            )

        try:
            outcome = await self.run(_post)
        except IntegrityError as e:
            existing = await self.run(
                lambda tx: tx.commissions.get_by_key(
                    result.event_id, link.ancestor_id, link.level
                )
            )
            if existing is None:
                self._log_failure(result, link, source_user_id, e)
                return
            self.logger.debug(
                "Commission already settled",
                extra={
                    "event_id": result.event_id,
                    "beneficiary_id": link.ancestor_id,
                    "level": link.level,
                },
            )
            result.records.append(existing)
            result.duplicates += 1
            return
        except EarnhubError as e:
            self._log_failure(result, link, source_user_id, e)
            return

        if isinstance(outcome, SkipReason):
            self.logger.debug(
                "Ancestor skipped",
                extra={
                    "event_id": result.event_id,
                    "ancestor_id": link.ancestor_id,
                    "level": link.level,
                    "reason": outcome.value,
                },
            )
            result.skipped[link.level] = outcome
            return

        self.logger.info(
            "Commission posted",
            extra={
                "event_id": result.event_id,
                "beneficiary_id": link.ancestor_id,
                "source_user_id": source_user_id,
                "level": link.level,
                "percent": str(outcome.commission_percent),
                "amount": str(outcome.commission_amount),
            },
        )
        result.records.append(outcome)

    async def _post_commission(
        self,
        tx: LedgerTransaction,
        link: AncestorLink,
        source_user_id: int,
        base_amount: Decimal,
        event_type: SettlementEventType,
        event_id: str,
    ) -> CommissionRecord | SkipReason:
        ancestor = await tx.get_user(link.ancestor_id)
        if ancestor is None or not ancestor.is_active:
            return SkipReason.INACTIVE

        # Only paying members draw video commission
        if event_type is SettlementEventType.VIDEO and not ancestor.is_vip:
            return SkipReason.NOT_VIP

        tier = await tx.tiers.get_by_rank(ancestor.vip_rank)
        if tier is None:
            return SkipReason.ZERO_RATE

        commission_type = event_type.commission_type
        percent = tier.commission_percent(commission_type, link.level)
        if percent <= 0:
            return SkipReason.ZERO_RATE

        amount = calculate_commission(base_amount, percent)
        if amount <= 0:
            return SkipReason.BELOW_MINOR_UNIT

        # Insert first: a duplicate key aborts before any balance moves
        record = await tx.commissions.create(
            event_id=event_id,
            beneficiary_id=ancestor.id,
            source_user_id=source_user_id,
            level=link.level,
            commission_type=commission_type.value,
            commission_percent=percent,
            base_amount=base_amount,
            commission_amount=amount,
            status=CommissionStatus.PAID.value,
        )
        await tx.update_balances(
            ancestor.id,
            BalanceDelta(income=amount, total_earnings=amount),
            FinancialRecordType.COMMISSION,
            reference_id=event_id,
            reference_type="commission",
            description=(
                f"Level {link.level} {commission_type.value} commission "
                f"from user {source_user_id}"
            ),
        )
        return record

    def _log_failure(
        self,
        result: SettlementResult,
        link: AncestorLink,
        source_user_id: int,
        error: Exception,
    ) -> None:
        result.failed.append(link.level)
        self.logger.opt(exception=error).error(
            "Commission posting failed, manual reconciliation required",
            extra={
                "event_id": result.event_id,
                "beneficiary_id": link.ancestor_id,
                "source_user_id": source_user_id,
                "level": link.level,
                "error": str(error),
            },
        )
