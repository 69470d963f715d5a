from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Literal
from pydantic import BaseModel, Field


class ReactionSetRequest(BaseModel):
    # строка, а не enum: невалидный тип отсекает сервис, без обращения к БД
    reaction_type: str = Field(..., max_length=32)


class ReactionStatus(BaseModel):
    has_reacted: bool = False
    reaction_type: str | None = None
    error: str | None = None  # None = ответ базы получен


class ReactionStatusResponse(ReactionStatus):
    video_id: str
    ip_address: str


class ReactionCount(BaseModel):
    reaction_type: str
    count: int


class ReactionCountsResponse(BaseModel):
    video_id: str
    items: list[ReactionCount]
    total: int


class VideoReactionCount(ReactionCount):
    video_id: str


class ReactionEventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ReactionEvent(BaseModel):
    event_type: ReactionEventType
    video_id: str
    ip_address: str | None = None
    reaction_type: str | None = None
    occurred_at: datetime | None = None


class SessionCommand(BaseModel):
    action: Literal["react", "watch"]
    reaction_type: str | None = None
    video_id: str | None = None
