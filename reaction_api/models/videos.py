from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class VideoEnsureResponse(BaseModel):
    video_id: str
    id: str


class Video(BaseModel):
    id: str
    file_id: str
    title: str
    description: str | None = None
    status: str = "active"
    views_count: int = 0
    is_featured: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VideoViewsResponse(BaseModel):
    video_id: str
    views_count: int
