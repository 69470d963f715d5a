"""Mongo repository for the video_reactions collection.

One document per (video, identity) pair: the pair is folded into ``_id``,
so the primary key itself keeps at most one live reaction per visitor.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

COLLECTION = 'video_reactions'
KEY_SEPARATOR = '|'


def reaction_key(video_id: str, ip_address: str) -> str:
    """Build the document id for a (video, identity) pair."""
    return f'{video_id}{KEY_SEPARATOR}{ip_address}'


def split_reaction_key(key: str) -> Tuple[str, str]:
    """Inverse of ``reaction_key``; the video id charset has no ``|``."""
    video_id, _, ip_address = key.partition(KEY_SEPARATOR)
    return video_id, ip_address


class ReactionsRepo:
    """CRUD and aggregation helpers for reactions."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._col = db[COLLECTION]

    async def ensure_indexes(self) -> None:
        """Create indexes for per-video grouping and per-visitor lookups."""
        await self._col.create_index(
            [('video_id', 1), ('reaction_type', 1)],
            name='video_reactions_video_type',
        )
        await self._col.create_index(
            [('ip_address', 1)],
            name='video_reactions_ip',
        )

    def _document(
        self,
        video_id: str,
        ip_address: str,
        reaction_type: str,
    ) -> Dict[str, Any]:
        return {
            '_id': reaction_key(video_id, ip_address),
            'video_id': video_id,
            'ip_address': ip_address,
            'reaction_type': reaction_type,
            'created_at': datetime.now(timezone.utc),
        }

    async def get(self, video_id: str, ip_address: str) -> Optional[dict]:
        """Get the live reaction of one visitor on one video."""
        return await self._col.find_one(
            {'_id': reaction_key(video_id, ip_address)},
            {'_id': 0, 'reaction_type': 1, 'created_at': 1},
        )

    async def upsert(
        self,
        video_id: str,
        ip_address: str,
        reaction_type: str,
    ) -> bool:
        """Insert or replace the reaction; return True if it was new."""
        doc = self._document(video_id, ip_address, reaction_type)
        res = await self._col.replace_one(
            {'_id': doc['_id']},
            doc,
            upsert=True,
        )
        return res.upserted_id is not None

    async def delete(self, video_id: str, ip_address: str) -> int:
        """Delete the reaction of a visitor; return deleted count."""
        res = await self._col.delete_one(
            {'_id': reaction_key(video_id, ip_address)},
        )
        return res.deleted_count

    async def insert(
        self,
        video_id: str,
        ip_address: str,
        reaction_type: str,
    ) -> None:
        """Plain insert; raises DuplicateKeyError if a reaction is live."""
        await self._col.insert_one(
            self._document(video_id, ip_address, reaction_type),
        )

    async def count_by_type(self, video_id: str) -> List[Dict[str, Any]]:
        """Reaction counts of one video grouped by kind, sorted by kind."""
        pipeline = [
            {'$match': {'video_id': video_id}},
            {'$group': {'_id': '$reaction_type', 'count': {'$sum': 1}}},
            {'$sort': {'_id': 1}},
        ]
        cursor = self._col.aggregate(pipeline)
        return [doc async for doc in cursor]

    async def count_all(self) -> List[Dict[str, Any]]:
        """Reaction counts of every video grouped by (video, kind)."""
        pipeline = [
            {'$group': {
                '_id': {'video_id': '$video_id', 'type': '$reaction_type'},
                'count': {'$sum': 1},
            }},
        ]
        cursor = self._col.aggregate(pipeline)
        return [doc async for doc in cursor]

    async def count_for_pair(self, video_id: str, ip_address: str) -> int:
        """Number of rows for a (video, identity) pair; at most 1."""
        return await self._col.count_documents(
            {'video_id': video_id, 'ip_address': ip_address},
        )
