"""
User service.

Registration with optional referral, soft status changes and tier
lookup.
"""

import secrets
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from earnhub.config.constants import REFERRAL_CODE_ALPHABET
from earnhub.config.settings import settings
from earnhub.models.enums import UserStatus
from earnhub.models.user import User
from earnhub.models.vip_tier import VipTier
from earnhub.services.base_service import BaseService, log_operation
from earnhub.services.ledger.store import LedgerStore, LedgerTransaction
from earnhub.services.referral.attachment import ReferralAttachmentService
from earnhub.utils.datetime_utils import utc_today
from earnhub.utils.exceptions import (
    InvalidCode,
    LedgerError,
    ReferralAttachmentError,
    UserNotFound,
)


# Attempts at finding an unused referral code before giving up
MAX_CODE_ATTEMPTS = 10


def generate_referral_code(length: int | None = None) -> str:
    """Random referral code from REFERRAL_CODE_ALPHABET."""
    length = length or settings.referral_code_length
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length)
    )


class UserService(BaseService):
    """User lifecycle operations."""

    def __init__(
        self,
        ledger: LedgerStore,
        attachment: ReferralAttachmentService | None = None,
    ) -> None:
        """
        Initialize user service.

        Args:
            ledger: Ledger store
            attachment: Referral attachment service
        """
        super().__init__(ledger)
        self.attachment = attachment or ReferralAttachmentService(ledger)

    @log_operation
    async def register(
        self,
        username: str,
        phone: str | None = None,
        referral_code: str | None = None,
    ) -> User:
        """
        Register new user, then attach to the referrer if a code is given.

        An invalid referral code does not fail the signup: the user is
        created without a referrer.

        Args:
            username: Unique username
            phone: Phone number (optional)
            referral_code: Referrer's code (optional)

        Returns:
            Created user

        Raises:
            ValueError: If the username is taken
        """

        async def _create(tx: LedgerTransaction) -> User:
            if await tx.users.get_by_username(username):
                raise ValueError("User already registered")

            for _ in range(MAX_CODE_ATTEMPTS):
                code = generate_referral_code()
                if not await tx.users.exists(referral_code=code):
                    break
            else:
                raise RuntimeError("Could not generate a unique referral code")

            return await tx.users.create(
                username=username,
                phone=phone,
                referral_code=code,
                status=UserStatus.ACTIVE.value,
                trial_ends_on=utc_today() + timedelta(days=settings.trial_days),
            )

        try:
            user = await self.run(_create)
        except IntegrityError as e:
            raise ValueError("User already registered") from e

        self.logger.info(
            "User registered",
            extra={
                "user_id": user.id,
                "username": username,
                "has_referral_code": referral_code is not None,
            },
        )

        if referral_code:
            try:
                await self.attachment.attach(user.id, referral_code)
            except InvalidCode:
                self.logger.info(
                    "Invalid referral code at signup, continuing without referrer",
                    extra={"user_id": user.id, "referral_code": referral_code},
                )
            except ReferralAttachmentError as e:
                self.logger.warning(
                    "Referral attachment rejected at signup",
                    extra={"user_id": user.id, "error": str(e)},
                )
            except LedgerError as e:
                # The user row is already committed
                self.logger.opt(exception=e).error(
                    "Referral attachment failed at signup, manual reconciliation required",
                    extra={"user_id": user.id, "referral_code": referral_code},
                )
            user = await self.get_user(user.id)

        return user

    async def get_user(self, user_id: int) -> User:
        """
        Get user by ID.

        Raises:
            UserNotFound: Unknown user
        """
        return await self.run(lambda tx: tx.require_user(user_id))

    async def set_status(self, user_id: int, status: UserStatus | str) -> User:
        """
        Change a user's soft status.

        A user who is not active stops earning commission: their edges
        as an ancestor are marked inactive. Reactivation restores them.

        Args:
            user_id: User ID
            status: New status

        Returns:
            Updated user
        """
        status = UserStatus(status)

        async def _apply(tx: LedgerTransaction) -> tuple[User, int]:
            if not await tx.users.set_status(user_id, status.value):
                raise UserNotFound(user_id)
            if status is UserStatus.ACTIVE:
                changed = await tx.referrals.reactivate_for_ancestor(user_id)
            else:
                changed = await tx.referrals.deactivate_for_ancestor(user_id)
            user = await tx.get_user_for_update(user_id)
            return user, changed

        user, edges_changed = await self.run(_apply)
        self.logger.info(
            "User status changed",
            extra={
                "user_id": user_id,
                "status": status.value,
                "edges_changed": edges_changed,
            },
        )
        return user

    async def get_vip_tier(self, user_id: int) -> VipTier | None:
        """Get the user's current VIP tier (None when not VIP)."""

        async def _load(tx: LedgerTransaction) -> VipTier | None:
            user = await tx.require_user(user_id)
            return await tx.tiers.get_by_rank(user.vip_rank)

        return await self.run(_load)
