"""
Referral edge model.

One row per (ancestor, descendant, level). Level A is the direct referrer,
D the furthest tracked generation.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnhub.models.base import Base

if TYPE_CHECKING:
    from earnhub.models.user import User


class ReferralEdge(Base):
    """Ancestor relationship between two users at a given level."""

    __tablename__ = "referrals"
    __table_args__ = (
        # At most one ancestor per level; also makes the A edge unique,
        # which serializes concurrent attachments of the same user.
        UniqueConstraint(
            "descendant_id", "level", name="uq_referrals_descendant_level"
        ),
        UniqueConstraint(
            "ancestor_id", "descendant_id", name="uq_referrals_ancestor_descendant"
        ),
        CheckConstraint(
            "level IN ('A', 'B', 'C', 'D')", name="check_referral_level"
        ),
        CheckConstraint(
            "ancestor_id != descendant_id", name="check_referral_not_self"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    ancestor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    descendant_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[str] = mapped_column(String(1), nullable=False, index=True)

    # Inactive edges stay for history but no longer earn commission
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    ancestor: Mapped["User"] = relationship(
        "User", foreign_keys=[ancestor_id], lazy="raise"
    )
    descendant: Mapped["User"] = relationship(
        "User", foreign_keys=[descendant_id], lazy="raise"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralEdge(ancestor_id={self.ancestor_id}, "
            f"descendant_id={self.descendant_id}, level={self.level})>"
        )
