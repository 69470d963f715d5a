from __future__ import annotations
from enum import Enum
from pydantic import BaseModel, Field

from reaction_api.models.reactions import ReactionCount


class SessionPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVING_IDENTITY = "resolving_identity"
    LOADING = "loading"
    READY = "ready"


class GateDecision(str, Enum):
    PENDING = "pending"  # ещё грузимся: не показываем и не снимаем замок
    LOCKED = "locked"
    OPEN = "open"


class SessionState(BaseModel):
    identity: str | None = None
    video_id: str | None = None
    phase: SessionPhase = SessionPhase.UNINITIALIZED
    has_reacted: bool = False
    user_reaction: str | None = None
    reaction_counts: list[ReactionCount] = Field(default_factory=list)
    loading: bool = True
    error: str | None = None


class SessionStateMessage(SessionState):
    type: str = "state"
    gate: GateDecision = GateDecision.PENDING
