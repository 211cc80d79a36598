"""
Integration tests for referral read views.
"""

from decimal import Decimal

import pytest

from earnhub.services.referral.query_manager import TeamQuery


class TestGetTeam:
    """Test ReferralQueryManager.get_team."""

    @pytest.mark.asyncio
    async def test_level_counts_and_pagination(
        self, make_user, refer, query_manager
    ):
        """Test counts per level and page slicing."""
        root = await make_user(vip_rank=1)
        a1, a2, a3 = [await make_user() for _ in range(3)]
        for child in (a1, a2, a3):
            await refer(child, root)
        b1 = await make_user()
        await refer(b1, a1)

        first = await query_manager.get_team(root.id, TeamQuery(per_page=3))

        assert first["total"] == 4
        assert first["pages"] == 2
        assert first["page"] == 1
        assert len(first["members"]) == 3
        assert first["level_counts"] == {"A": 3, "B": 1, "C": 0, "D": 0}

        direct = await query_manager.get_team(
            root.id, TeamQuery(level="A", page=2, per_page=2)
        )
        assert direct["total"] == 3
        assert [m["user_id"] for m in direct["members"]] == [a1.id]
        assert direct["members"][0]["level"] == "A"

    @pytest.mark.asyncio
    async def test_empty_team(self, make_user, query_manager):
        """Test a user with no team."""
        user = await make_user()

        team = await query_manager.get_team(user.id)

        assert team["members"] == []
        assert team["total"] == 0
        assert team["pages"] == 0


class TestCommissionSummary:
    """Test ReferralQueryManager.get_commission_summary."""

    @pytest.mark.asyncio
    async def test_totals_by_type_and_level(
        self, make_user, refer, settlement, query_manager
    ):
        """Test video and upgrade totals with per-level counts."""
        root = await make_user(vip_rank=1)
        child = await make_user()
        grandchild = await make_user()
        await refer(child, root)
        await refer(grandchild, child)

        await settlement.settle_earning(child.id, Decimal("100"), "video", "evt-s1")
        await settlement.settle_earning(
            child.id, Decimal("2000"), "deposit_upgrade", "vip_upgrade:s:1"
        )
        await settlement.settle_earning(
            grandchild.id, Decimal("100"), "video", "evt-s2"
        )

        summary = await query_manager.get_commission_summary(root.id)

        assert summary["video"] == Decimal("4.50")
        assert summary["upgrade"] == Decimal("200.00")
        assert summary["paid"] == Decimal("204.50")
        assert summary["pending"] == Decimal("0")
        assert summary["total"] == Decimal("204.50")
        assert summary["count_by_level"] == {"A": 2, "B": 1, "C": 0, "D": 0}

    @pytest.mark.asyncio
    async def test_no_commissions(self, make_user, query_manager):
        """Test zeros for a user who never earned commission."""
        user = await make_user()

        summary = await query_manager.get_commission_summary(user.id)

        assert summary["total"] == Decimal("0")
        assert summary["count_by_level"] == {"A": 0, "B": 0, "C": 0, "D": 0}


class TestGetMyReferrers:
    """Test ReferralQueryManager.get_my_referrers."""

    @pytest.mark.asyncio
    async def test_chain_of_referrers(self, make_user, refer, query_manager):
        """Test direct referrer and upper levels are listed A..D."""
        root = await make_user()
        child = await make_user()
        grandchild = await make_user()
        await refer(child, root)
        await refer(grandchild, child)

        info = await query_manager.get_my_referrers(grandchild.id)

        assert info["has_referrer"] is True
        assert info["direct_referrer"]["user_id"] == child.id
        assert [(r["level"], r["user_id"]) for r in info["referrers"]] == [
            ("A", child.id),
            ("B", root.id),
        ]

    @pytest.mark.asyncio
    async def test_root_user(self, make_user, query_manager):
        """Test a user without referrer."""
        user = await make_user()

        info = await query_manager.get_my_referrers(user.id)

        assert info == {
            "has_referrer": False,
            "referrers": [],
            "direct_referrer": None,
        }
