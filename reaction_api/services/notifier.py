"""Change notification for the reaction store.

``ChangeNotifier`` is an in-process fan-out keyed by video id. Events reach
it either from ``ReactionsService`` right after its own writes (single
process) or from ``ReactionChangeStream``, which tails the Mongo change
stream and so also sees writes made by other processes.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from reaction_api.models.reactions import ReactionEvent, ReactionEventType
from reaction_api.services.repositories.reactions_repo import (
    COLLECTION,
    split_reaction_key,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[ReactionEvent], None]

_OPERATION_TYPES = {
    'insert': ReactionEventType.INSERT,
    'update': ReactionEventType.UPDATE,
    'replace': ReactionEventType.UPDATE,
    'delete': ReactionEventType.DELETE,
}


class Subscription:
    """Handle returned by ``ChangeNotifier.subscribe``."""

    def __init__(
        self,
        notifier: 'ChangeNotifier',
        video_id: str,
        callback: EventCallback,
    ) -> None:
        self.video_id = video_id
        self.callback = callback
        self._notifier: Optional[ChangeNotifier] = notifier

    @property
    def active(self) -> bool:
        return self._notifier is not None

    def unsubscribe(self) -> None:
        """Release the subscription; safe to call more than once."""
        if self._notifier is not None:
            self._notifier._remove(self)
            self._notifier = None


class ChangeNotifier:
    """Deliver reaction events to the subscribers of one video."""

    def __init__(self, local_fanout: bool = True) -> None:
        # local_fanout=False: события приходят только из change stream
        self.local_fanout = local_fanout
        self._subs: Dict[str, List[Subscription]] = defaultdict(list)

    def subscribe(self, video_id: str, callback: EventCallback) -> Subscription:
        """Register a callback for every change on ``video_id``.

        Callbacks run synchronously inside ``publish`` and must only
        schedule work, never block.
        """
        sub = Subscription(self, video_id, callback)
        self._subs[video_id].append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.video_id)
        if not subs:
            return
        try:
            subs.remove(sub)
        except ValueError:
            return
        if not subs:
            del self._subs[sub.video_id]

    def subscriber_count(self, video_id: Optional[str] = None) -> int:
        if video_id is not None:
            return len(self._subs.get(video_id, ()))
        return sum(len(subs) for subs in self._subs.values())

    def publish(self, event: ReactionEvent) -> int:
        """Fan an event out; return how many subscribers were called."""
        delivered = 0
        for sub in list(self._subs.get(event.video_id, ())):
            try:
                sub.callback(event)
            except Exception:
                # один сломанный подписчик не должен глушить остальных
                logger.exception(
                    'notifier_callback_failed',
                    extra={'video_id': event.video_id},
                )
                continue
            delivered += 1
        return delivered


def event_from_change(change: dict) -> Optional[ReactionEvent]:
    """Map a Mongo change-stream document to a ReactionEvent."""
    event_type = _OPERATION_TYPES.get(change.get('operationType'))
    key = change.get('documentKey', {}).get('_id')
    if event_type is None or not isinstance(key, str):
        return None
    video_id, ip_address = split_reaction_key(key)
    full = change.get('fullDocument') or {}
    return ReactionEvent(
        event_type=event_type,
        video_id=video_id,
        ip_address=ip_address,
        reaction_type=full.get('reaction_type'),
        occurred_at=change.get('wallTime'),
    )


class ReactionChangeStream:
    """Tail the video_reactions change stream into a ChangeNotifier."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        notifier: ChangeNotifier,
        retry_delay: float = 1.0,
    ) -> None:
        self._col = db[COLLECTION]
        self.notifier = notifier
        self.retry_delay = retry_delay
        self._task: Optional[asyncio.Task] = None

    async def _watch_once(self) -> None:
        pipeline = [
            {'$match': {'operationType': {'$in': list(_OPERATION_TYPES)}}},
        ]
        async with self._col.watch(pipeline=pipeline) as stream:
            async for change in stream:
                event = event_from_change(change)
                if event is not None:
                    self.notifier.publish(event)

    async def run(self) -> None:
        """Watch forever, re-opening the stream after errors."""
        while True:
            try:
                await self._watch_once()
            except PyMongoError as error:
                logger.warning(
                    'change_stream_interrupted',
                    extra={'err': str(error)},
                )
            await asyncio.sleep(self.retry_delay)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


_notifier: Optional[ChangeNotifier] = None


def get_notifier() -> ChangeNotifier:
    """Process-wide notifier shared by all sessions."""
    global _notifier
    if _notifier is None:
        _notifier = ChangeNotifier()
    return _notifier


def reset_notifier(local_fanout: bool = True) -> ChangeNotifier:
    global _notifier
    _notifier = ChangeNotifier(local_fanout=local_fanout)
    return _notifier
