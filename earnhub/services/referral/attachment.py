"""
Referral attachment service.

Attaches a new user under a referrer and materializes the ancestor
edges for levels A-D in one transaction.
"""

from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError

from earnhub.config.constants import MAX_REFERRAL_DEPTH, next_level
from earnhub.services.base_service import BaseService
from earnhub.services.ledger.store import LedgerTransaction
from earnhub.utils.exceptions import (
    AlreadyReferred,
    InvalidCode,
    SelfReferral,
)


@dataclass
class AttachResult:
    """Result of a successful attachment."""

    referrer_id: int
    levels: list[str] = field(default_factory=list)

    @property
    def levels_created(self) -> int:
        """Number of edges created (1-4)."""
        return len(self.levels)


class ReferralAttachmentService(BaseService):
    """Attaches users to the referral tree."""

    async def attach(self, new_user_id: int, referral_code: str) -> AttachResult:
        """
        Attach a user to the owner of a referral code.

        Creates the A edge to the referrer, then one edge per ancestor of
        the referrer with the level shifted by one (A->B, B->C, C->D).
        The referrer's D ancestor is not carried over.

        Args:
            new_user_id: User being attached
            referral_code: Code of the referrer

        Returns:
            AttachResult with referrer ID and levels created

        Raises:
            UserNotFound: Unknown new user
            AlreadyReferred: User already has a referrer
            InvalidCode: Code does not resolve to an active user
            SelfReferral: Referrer is the user or one of its descendants
        """

        async def _attach(tx: LedgerTransaction) -> AttachResult:
            return await self._attach(tx, new_user_id, referral_code)

        try:
            result = await self.run(_attach)
        except IntegrityError as e:
            # Unique (descendant_id, level) lost to a concurrent attachment
            raise AlreadyReferred(new_user_id) from e

        self.logger.info(
            "Referral attached",
            extra={
                "user_id": new_user_id,
                "referrer_id": result.referrer_id,
                "levels_created": result.levels_created,
            },
        )
        return result

    async def _attach(
        self, tx: LedgerTransaction, new_user_id: int, referral_code: str
    ) -> AttachResult:
        user = await tx.require_user(new_user_id)
        if user.referrer_id is not None:
            raise AlreadyReferred(new_user_id)

        referrer = await tx.users.get_by_referral_code(referral_code)
        if referrer is None or not referrer.is_active:
            raise InvalidCode(referral_code)
        if referrer.id == new_user_id:
            raise SelfReferral(new_user_id, referrer.id)

        # Include inactive edges: they still define the tree shape
        referrer_chain = await tx.get_ancestor_chain(
            referrer.id, active_only=False
        )
        if any(link.ancestor_id == new_user_id for link in referrer_chain):
            raise SelfReferral(new_user_id, referrer.id)

        if not await tx.users.set_referrer_if_unset(new_user_id, referrer.id):
            raise AlreadyReferred(new_user_id)

        await tx.referrals.create(
            ancestor_id=referrer.id, descendant_id=new_user_id, level="A"
        )
        levels = ["A"]

        for link in referrer_chain[: MAX_REFERRAL_DEPTH - 1]:
            level = next_level(link.level)
            if level is None:
                break
            await tx.referrals.create(
                ancestor_id=link.ancestor_id,
                descendant_id=new_user_id,
                level=level,
            )
            levels.append(level)

        return AttachResult(referrer_id=referrer.id, levels=levels)
