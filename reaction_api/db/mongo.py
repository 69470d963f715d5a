import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from reaction_api.core.config import settings

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None


def _build_client() -> AsyncIOMotorClient:
    # короткие таймауты: читающие операции реакций деградируют к дефолтам,
    # а не висят на недоступной базе
    return AsyncIOMotorClient(
        settings.mongo_dsn,
        appname="reaction-gate-api",
        tz_aware=True,
        maxPoolSize=50,
        serverSelectionTimeoutMS=3000,
        connectTimeoutMS=3000,
        socketTimeoutMS=5000,
        retryWrites=True,
    )


async def get_client() -> AsyncIOMotorClient:
    """Process-wide Motor client, created on first use."""
    global _client
    if _client is None:
        _client = _build_client()
        if not await ping():
            logger.warning("mongo_unreachable_at_startup",
                           extra={"db": settings.mongo_db})
    return _client


async def get_mongo_db() -> AsyncIOMotorDatabase:
    client = await get_client()
    return client[settings.mongo_db]


async def ping() -> bool:
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
    except PyMongoError as e:
        logger.warning("mongo_ping_failed", extra={"err": str(e)})
        return False
    return True


async def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
