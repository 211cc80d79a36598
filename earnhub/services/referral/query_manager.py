"""
Referral query management module.

Read-only views of a user's team, referrers and commission history.
"""

from dataclasses import dataclass
from decimal import Decimal

from earnhub.config.constants import REFERRAL_LEVELS
from earnhub.models.enums import CommissionStatus, CommissionType
from earnhub.services.base_service import BaseService
from earnhub.services.ledger.store import LedgerTransaction


MAX_PER_PAGE = 100


@dataclass(frozen=True)
class TeamQuery:
    """
    Team listing options.

    Attributes:
        level: Only this level (A-D), or None for all levels
        page: 1-based page number
        per_page: Page size (1-100)
    """

    level: str | None = None
    page: int = 1
    per_page: int = 10

    def __post_init__(self) -> None:
        if self.level is not None and self.level not in REFERRAL_LEVELS:
            raise ValueError(f"Unknown referral level: {self.level!r}")
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.per_page <= MAX_PER_PAGE:
            raise ValueError(f"per_page must be between 1 and {MAX_PER_PAGE}")

    @property
    def offset(self) -> int:
        """Rows to skip."""
        return (self.page - 1) * self.per_page


class ReferralQueryManager(BaseService):
    """Manages referral query operations."""

    async def get_team(
        self, user_id: int, query: TeamQuery | None = None
    ) -> dict:
        """
        Get one page of a user's team.

        Args:
            user_id: Ancestor user ID
            query: Listing options

        Returns:
            Dict with members, total, page, pages, level_counts
        """
        query = query or TeamQuery()

        async def _load(tx: LedgerTransaction) -> dict:
            rows = await tx.referrals.get_team_page(
                user_id, query.level, query.per_page, query.offset
            )
            total = await tx.referrals.count_team(user_id, query.level)
            level_counts = await tx.referrals.get_level_counts(user_id)
            return {
                "members": [
                    {
                        "user_id": member.id,
                        "username": member.username,
                        "level": edge.level,
                        "vip_rank": member.vip_rank,
                        "is_active": edge.is_active,
                        "joined_at": edge.created_at,
                    }
                    for edge, member in rows
                ],
                "total": total,
                "level_counts": level_counts,
            }

        data = await self.run(_load)
        data["page"] = query.page
        data["pages"] = (data["total"] + query.per_page - 1) // query.per_page
        return data

    async def get_commission_summary(self, user_id: int) -> dict:
        """
        Get commission totals for a beneficiary.

        Returns:
            Dict with paid, pending, video, upgrade totals, total and
            count_by_level
        """

        async def _load(tx: LedgerTransaction) -> dict:
            by_status = await tx.commissions.get_totals_by_status(user_id)
            by_type = await tx.commissions.get_totals_by_type(user_id)
            by_level = await tx.commissions.get_counts_by_level(user_id)
            return {
                "paid": by_status.get(CommissionStatus.PAID.value, Decimal("0")),
                "pending": by_status.get(
                    CommissionStatus.PENDING.value, Decimal("0")
                ),
                "video": by_type.get(CommissionType.VIDEO.value, Decimal("0")),
                "upgrade": by_type.get(
                    CommissionType.UPGRADE.value, Decimal("0")
                ),
                "count_by_level": {
                    level: by_level.get(level, 0) for level in REFERRAL_LEVELS
                },
            }

        summary = await self.run(_load)
        summary["total"] = summary["paid"] + summary["pending"]
        return summary

    async def get_my_referrers(self, user_id: int) -> dict:
        """
        Get who invited this user (their referrer chain).

        Returns:
            Dict with has_referrer, referrers (A..D) and direct_referrer
        """
        rows = await self.run(lambda tx: tx.referrals.get_referrers(user_id))

        referrers = []
        direct_referrer = None
        for edge, ancestor in rows:
            info = {
                "level": edge.level,
                "user_id": ancestor.id,
                "username": ancestor.username,
                "is_active": edge.is_active,
            }
            referrers.append(info)
            if edge.level == "A":
                direct_referrer = info

        return {
            "has_referrer": direct_referrer is not None,
            "referrers": referrers,
            "direct_referrer": direct_referrer,
        }
