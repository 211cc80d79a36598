"""
Earning activity models.

Video watches and task completions. Each (user, item, day) pays at most
once, enforced by unique constraints.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.types import MoneyType


class VideoWatch(Base):
    """Rewarded video watch."""

    __tablename__ = "video_earnings"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "video_id", "watched_on", name="uq_video_watch_per_day"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    video_id: Mapped[str] = mapped_column(String(100), nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    watched_on: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def event_id(self) -> str:
        """Settlement idempotency key for this watch."""
        return f"video:{self.id}"


class TaskCompletion(Base):
    """Completed daily task."""

    __tablename__ = "task_completions"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "task_id", "completed_on", name="uq_task_completion_per_day"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id: Mapped[str] = mapped_column(String(100), nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    completed_on: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
