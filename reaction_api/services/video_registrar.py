"""Auto-provisioning of video rows for externally supplied ids."""

from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from reaction_api.core.validation import is_valid_video_id
from reaction_api.services.repositories.videos_repo import VideosRepo

logger = logging.getLogger(__name__)


class VideoRegistrar:
    """Make sure a video row exists before reactions reference it."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        """Initialize repository."""
        self.repo = VideosRepo(db)

    async def ensure_video(
        self,
        video_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[str]:
        """Idempotently create the video row; return its id.

        Returns None, without touching storage, for an id that fails
        validation, and None when the store is unavailable.
        """
        if not is_valid_video_id(video_id):
            logger.warning('video_id_rejected')
            return None
        try:
            return await self.repo.ensure(video_id, title, description)
        except PyMongoError as error:
            logger.warning(
                'ensure_video_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
            return None

    async def get_video(self, video_id: str) -> Optional[dict]:
        """Get the stored video row, or None."""
        if not is_valid_video_id(video_id):
            return None
        return await self.repo.get_by_file_id(video_id)

    async def record_view(self, video_id: str) -> Optional[int]:
        """Count one view of the video; return the new total.

        The row is ensured first. Returns None for an invalid id or when
        the store is unavailable.
        """
        if await self.ensure_video(video_id) is None:
            return None
        try:
            return await self.repo.increment_views(video_id)
        except PyMongoError as error:
            logger.warning(
                'record_view_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
            return None
