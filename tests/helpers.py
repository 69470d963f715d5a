import itertools
import uuid
from typing import Dict
from httpx import AsyncClient

from reaction_api.services.identity_service import FALLBACK_IDENTITY

_ip_counter = itertools.count(1)


def new_video() -> str:
    return f"vid-{uuid.uuid4().hex[:12]}"


def new_ip() -> str:
    n = next(_ip_counter)
    return f"198.51.{n // 250}.{n % 250 + 1}"


def ip_header(ip: str) -> Dict[str, str]:
    return {"X-Forwarded-For": ip}


class StaticResolver:
    """Резолвер с заранее известным IP и счётчиком вызовов."""

    def __init__(self, ip: str = FALLBACK_IDENTITY) -> None:
        self.ip = ip
        self.calls = 0

    async def resolve(self) -> str:
        self.calls += 1
        return self.ip


async def read_counts(client: AsyncClient, video_id: str) -> dict:
    r = await client.get(f"/api/v1/reactions/{video_id}/counts")
    assert r.status_code == 200
    return {i["reaction_type"]: i["count"] for i in r.json()["items"]}
