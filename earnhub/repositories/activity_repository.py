"""
Activity repositories.

Video watches and task completions.
"""

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.activity import TaskCompletion, VideoWatch
from earnhub.repositories.base import BaseRepository


class VideoWatchRepository(BaseRepository[VideoWatch]):
    """Video watch repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize video watch repository."""
        super().__init__(VideoWatch, session)

    async def has_watched(
        self, user_id: int, video_id: str, day: date
    ) -> bool:
        """Check whether the video was already rewarded on this day."""
        return await self.exists(
            user_id=user_id, video_id=video_id, watched_on=day
        )


class TaskCompletionRepository(BaseRepository[TaskCompletion]):
    """Task completion repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize task completion repository."""
        super().__init__(TaskCompletion, session)

    async def has_completed(
        self, user_id: int, task_id: str, day: date
    ) -> bool:
        """Check whether the task was already rewarded on this day."""
        return await self.exists(
            user_id=user_id, task_id=task_id, completed_on=day
        )
