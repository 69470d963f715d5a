from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

PLACEHOLDER_DESCRIPTION = "Auto-generated video entry"


def placeholder_title(file_id: str) -> str:
    return f"Video {file_id}"


class VideosRepo:
    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db["videos"]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("file_id", 1)], unique=True,
                                     name="videos_file_id")

    async def get_by_file_id(self, file_id: str) -> Optional[dict]:
        return await self._col.find_one({"file_id": file_id})

    async def ensure(
            self,
            file_id: str,
            title: Optional[str] = None,
            description: Optional[str] = None) -> str:
        """
        Идемпотентный upsert по file_id: существующую строку не трогаем,
        новую создаём с заглушками. Возвращает _id строки.
        """
        now = datetime.now(timezone.utc)
        set_on_insert = {
            "file_id": file_id,
            "title": title or placeholder_title(file_id),
            "description": description or PLACEHOLDER_DESCRIPTION,
            "status": "active",
            "views_count": 0,
            "is_featured": False,
            "created_at": now,
            "updated_at": now,
        }
        doc = await self._col.find_one_and_update(
            {"file_id": file_id},
            {"$setOnInsert": set_on_insert},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            projection={"_id": 1},
        )
        return str(doc["_id"])

    async def increment_views(self, file_id: str) -> Optional[int]:
        """+1 к views_count существующей строки; None, если строки нет."""
        doc = await self._col.find_one_and_update(
            {"file_id": file_id},
            {"$inc": {"views_count": 1},
             "$set": {"updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
            projection={"views_count": 1},
        )
        return doc["views_count"] if doc else None
