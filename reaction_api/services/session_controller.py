"""Per-viewer reaction session: identity, status, counts and live updates.

One controller backs one mounted video view. It resolves the visitor
identity once, loads status and counts for the current video, keeps a
single notifier subscription for that video and reconciles its state
after every local write or remote change.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from reaction_api.core.trace import set_video_id
from reaction_api.models.reactions import (
    ReactionCount,
    ReactionEvent,
    ReactionStatus,
)
from reaction_api.models.session import SessionPhase, SessionState
from reaction_api.services.identity_service import IdentityResolver
from reaction_api.services.notifier import ChangeNotifier, Subscription
from reaction_api.services.reactions_service import ReactionsService

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState], Awaitable[None]]


class ReactionSessionController:  # noqa: WPS214 (methods count)
    """State machine UNINITIALIZED -> RESOLVING_IDENTITY -> LOADING -> READY.

    Session state is kept in two slots. The optimistic slot is filled as
    soon as a local write succeeds, so playback unlocks at once; the
    reconciled slot holds the last status read from the store. A read
    that started after the optimistic write replaces it, an older
    in-flight read cannot.
    """

    def __init__(
        self,
        service: ReactionsService,
        resolver: IdentityResolver,
        notifier: ChangeNotifier,
        reconcile_delay: float = 0.1,
        on_change: Optional[StateListener] = None,
    ) -> None:
        self.service = service
        self.resolver = resolver
        self.notifier = notifier
        self.reconcile_delay = reconcile_delay
        self.on_change = on_change

        self._identity: Optional[str] = None
        self._video_id: Optional[str] = None
        self._phase = SessionPhase.UNINITIALIZED
        self._epoch = 0

        self._reconciled = ReactionStatus()
        self._optimistic: Optional[str] = None
        self._optimistic_seq = 0
        self._write_seq = 0
        self._read_seq = 0
        self._applied_read = 0
        self._counts: List[ReactionCount] = []

        self._subscription: Optional[Subscription] = None
        self._reconcile_task: Optional[asyncio.Task] = None
        self._closed = False

    # ---------- state ----------

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def video_id(self) -> Optional[str]:
        return self._video_id

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def has_reacted(self) -> bool:
        if self._optimistic is not None:
            return True
        return self._reconciled.has_reacted

    @property
    def user_reaction(self) -> Optional[str]:
        if self._optimistic is not None:
            return self._optimistic
        return self._reconciled.reaction_type

    @property
    def state(self) -> SessionState:
        return SessionState(
            identity=self._identity,
            video_id=self._video_id,
            phase=self._phase,
            has_reacted=self.has_reacted,
            user_reaction=self.user_reaction,
            reaction_counts=list(self._counts),
            loading=self._phase is not SessionPhase.READY,
            error=self._reconciled.error,
        )

    async def _emit(self) -> None:
        if self.on_change is not None and not self._closed:
            await self.on_change(self.state)

    # ---------- lifecycle ----------

    async def mount(self, video_id: str) -> SessionState:
        """Resolve identity (once) and load the session for ``video_id``."""
        if self._identity is None:
            self._phase = SessionPhase.RESOLVING_IDENTITY
            await self._emit()
            self._identity = await self.resolver.resolve()
            logger.info('session_identity_resolved')
        return await self.change_video(video_id)

    async def change_video(self, video_id: str) -> SessionState:
        """Reset the session to ``video_id`` and load it from scratch."""
        if self._identity is None:
            return await self.mount(video_id)

        self._teardown()
        self._epoch += 1
        epoch = self._epoch
        self._video_id = video_id
        self._phase = SessionPhase.LOADING
        self._reconciled = ReactionStatus()
        self._optimistic = None
        self._counts = []
        set_video_id(video_id)
        await self._emit()

        self._subscription = self.notifier.subscribe(
            video_id, self._on_event,
        )
        await self._pull(epoch)
        # просмотр засчитываем, когда сессия загружена
        await self.service.registrar.record_view(video_id)
        return self.state

    async def close(self) -> None:
        """Release the subscription and any pending reconciliation."""
        self._closed = True
        self._teardown()
        await self.drain()

    def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._reconcile_task is not None:
            self._reconcile_task.cancel()

    # ---------- reads ----------

    async def _pull(self, epoch: int) -> None:
        started_seq = self._write_seq
        self._read_seq += 1
        read_id = self._read_seq
        video_id = self._video_id
        status, counts = await asyncio.gather(
            self.service.get_status(video_id, self._identity),
            self.service.get_counts(video_id),
        )
        if epoch != self._epoch or self._closed:
            # пока ждали ответ, сессия переключилась на другое видео
            logger.debug('session_stale_read_dropped')
            return
        if read_id < self._applied_read:
            # более свежее чтение уже применено
            return
        self._applied_read = read_id
        self._apply_status(status, started_seq)
        self._counts = counts
        self._phase = SessionPhase.READY
        await self._emit()

    def _apply_status(self, status: ReactionStatus, started_seq: int) -> None:
        if status.error is not None and self.has_reacted:
            # сбой чтения не должен снова закрывать уже открытое видео
            return
        self._reconciled = status
        if self._optimistic is not None and self._optimistic_seq <= started_seq:
            self._optimistic = None

    def _on_event(self, event: ReactionEvent) -> None:
        if event.video_id == self._video_id:
            self._schedule_reconcile()

    def _schedule_reconcile(self) -> None:
        if self._closed:
            return
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_task.cancel()
        self._reconcile_task = asyncio.create_task(
            self._reconcile(self._epoch),
        )

    async def _reconcile(self, epoch: int) -> None:
        await asyncio.sleep(self.reconcile_delay)
        try:
            await self._pull(epoch)
        except Exception:
            # фоновая задача: исключение иначе потеряется молча
            logger.exception('session_reconcile_failed')

    async def drain(self) -> None:
        """Wait until no reconciliation is pending."""
        while self._reconcile_task is not None:
            task = self._reconcile_task
            await asyncio.wait({task})
            if self._reconcile_task is task:
                self._reconcile_task = None

    # ---------- writes ----------

    async def add_reaction(self, reaction_type: str) -> bool:
        """React on the current video and unlock playback optimistically.

        Returns False for invalid input. ReactionWriteError from the
        service propagates and leaves the session untouched.
        """
        if self._identity is None or self._video_id is None:
            return False
        epoch = self._epoch
        applied = await self.service.add_reaction(
            self._video_id, self._identity, reaction_type,
        )
        if not applied:
            return False
        if epoch != self._epoch or self._closed:
            return True

        self._write_seq += 1
        self._optimistic = reaction_type
        self._optimistic_seq = self._write_seq
        await self._emit()
        self._schedule_reconcile()
        return True
