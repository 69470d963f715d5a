"""Service layer for anonymous per-IP video reactions."""

from __future__ import annotations

import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from reaction_api.core.validation import (
    is_valid_reaction_kind,
    is_valid_video_id,
)
from reaction_api.models.reactions import (
    ReactionCount,
    ReactionEvent,
    ReactionEventType,
    ReactionStatus,
    VideoReactionCount,
)
from reaction_api.services.notifier import ChangeNotifier
from reaction_api.services.repositories.reactions_repo import ReactionsRepo
from reaction_api.services.video_registrar import VideoRegistrar

logger = logging.getLogger(__name__)

INVALID_VIDEO_ID = 'invalid_video_id'
STATUS_UNAVAILABLE = 'status_unavailable'


class ReactionWriteError(RuntimeError):
    """The reaction row could not be stored."""


class ReactionsService:
    """Status, counts and writes for reactions, one per (video, IP).

    Reads never raise: a bad id or a store failure yields the safe
    default (not reacted / no counts). Only a failed write propagates.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        registrar: VideoRegistrar,
        notifier: Optional[ChangeNotifier] = None,
        atomic_upsert: bool = True,
    ) -> None:
        """Initialize service with database, registrar and notifier."""
        self.repo = ReactionsRepo(db)
        self.registrar = registrar
        self.notifier = notifier
        self.atomic_upsert = atomic_upsert

    # ----- READ -----

    async def get_status(
        self,
        video_id: str,
        ip_address: str,
    ) -> ReactionStatus:
        """Return whether ``ip_address`` has reacted and with which kind."""
        if not is_valid_video_id(video_id):
            logger.warning('status_video_id_rejected')
            return ReactionStatus(error=INVALID_VIDEO_ID)
        await self.registrar.ensure_video(video_id)
        try:
            doc = await self.repo.get(video_id, ip_address)
        except PyMongoError as error:
            logger.warning(
                'reaction_status_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
            return ReactionStatus(error=STATUS_UNAVAILABLE)
        if doc is None:
            return ReactionStatus()
        return ReactionStatus(
            has_reacted=True,
            reaction_type=doc['reaction_type'],
        )

    async def get_counts(self, video_id: str) -> List[ReactionCount]:
        """Return reaction counts of a video grouped by kind."""
        if not is_valid_video_id(video_id):
            logger.warning('counts_video_id_rejected')
            return []
        await self.registrar.ensure_video(video_id)
        try:
            rows = await self.repo.count_by_type(video_id)
        except PyMongoError as error:
            logger.warning(
                'reaction_counts_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
            return []
        return [
            ReactionCount(reaction_type=row['_id'], count=int(row['count']))
            for row in rows
        ]

    async def get_all_counts(self) -> List[VideoReactionCount]:
        """Return reaction counts of every video, for analytics."""
        try:
            rows = await self.repo.count_all()
        except PyMongoError as error:
            logger.warning(
                'reaction_counts_all_failed',
                extra={'err': str(error)},
            )
            return []
        items = [
            VideoReactionCount(
                video_id=row['_id']['video_id'],
                reaction_type=row['_id']['type'],
                count=int(row['count']),
            )
            for row in rows
        ]
        items.sort(key=lambda item: (item.video_id, item.reaction_type))
        return items

    # ----- WRITE -----

    async def add_reaction(
        self,
        video_id: str,
        ip_address: str,
        reaction_type: str,
    ) -> bool:
        """Store the visitor's reaction, replacing any previous one.

        Returns False, without touching storage, if an argument fails
        validation. Raises ReactionWriteError if the row was not stored.
        """
        if not ip_address:
            logger.warning('reaction_identity_missing')
            return False
        if not is_valid_video_id(video_id):
            logger.warning('reaction_video_id_rejected')
            return False
        if not is_valid_reaction_kind(reaction_type):
            logger.warning('reaction_type_rejected')
            return False

        await self.registrar.ensure_video(video_id)

        if self.atomic_upsert:
            created = await self._write_upsert(
                video_id, ip_address, reaction_type,
            )
            event_type = (
                ReactionEventType.INSERT if created
                else ReactionEventType.UPDATE
            )
        else:
            await self._write_delete_insert(
                video_id, ip_address, reaction_type,
            )
            event_type = ReactionEventType.INSERT

        logger.info(
            'reaction_stored',
            extra={'video_id': video_id, 'reaction_type': reaction_type},
        )
        self._publish(ReactionEvent(
            event_type=event_type,
            video_id=video_id,
            ip_address=ip_address,
            reaction_type=reaction_type,
        ))
        return True

    async def _write_upsert(
        self,
        video_id: str,
        ip_address: str,
        reaction_type: str,
    ) -> bool:
        try:
            return await self.repo.upsert(video_id, ip_address, reaction_type)
        except PyMongoError as error:
            logger.error(
                'reaction_insert_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
            raise ReactionWriteError(
                f'reaction_insert_error: {error}'
            ) from error

    async def _write_delete_insert(
        self,
        video_id: str,
        ip_address: str,
        reaction_type: str,
    ) -> None:
        # не транзакция: между delete и insert посетитель остаётся без
        # реакции, что равно «ещё не реагировал»
        try:
            deleted = await self.repo.delete(video_id, ip_address)
        except PyMongoError as error:
            logger.warning(
                'reaction_delete_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
        else:
            if deleted:
                self._publish(ReactionEvent(
                    event_type=ReactionEventType.DELETE,
                    video_id=video_id,
                    ip_address=ip_address,
                ))
        try:
            await self.repo.insert(video_id, ip_address, reaction_type)
        except PyMongoError as error:
            logger.error(
                'reaction_insert_failed',
                extra={'video_id': video_id, 'err': str(error)},
            )
            raise ReactionWriteError(
                f'reaction_insert_error: {error}'
            ) from error

    def _publish(self, event: ReactionEvent) -> None:
        if self.notifier is not None and self.notifier.local_fanout:
            self.notifier.publish(event)
