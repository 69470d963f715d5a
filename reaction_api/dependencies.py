from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.requests import HTTPConnection
from reaction_api.core.config import settings
from reaction_api.db.mongo import get_mongo_db
from reaction_api.services.identity_service import (
    HeaderIdentityResolver,
    HttpIdentityResolver,
    IdentityResolver,
    client_ip_from_headers,
    FALLBACK_IDENTITY,
)
from reaction_api.services.notifier import ChangeNotifier, get_notifier
from reaction_api.services.reactions_service import ReactionsService
from reaction_api.services.video_registrar import VideoRegistrar


def client_identity(request: Request) -> str:
    # для REST личность = IP из заголовков прокси
    return client_ip_from_headers(
        request.headers,
        request.client.host if request.client else None,
        default=FALLBACK_IDENTITY,
    )


def get_identity_resolver(conn: HTTPConnection) -> IdentityResolver:
    if settings.identity_lookup_url:
        return HttpIdentityResolver(
            settings.identity_lookup_url,
            timeout=settings.identity_lookup_timeout_s,
        )
    return HeaderIdentityResolver(
        conn.headers,
        conn.client.host if conn.client else None,
    )


async def get_db() -> AsyncIOMotorDatabase:
    # единая точка доступа к БД через singleton-клиент
    return await get_mongo_db()


def get_change_notifier() -> ChangeNotifier:
    return get_notifier()


async def get_video_registrar(db=Depends(get_db)) -> VideoRegistrar:
    return VideoRegistrar(db)


async def get_reactions_service(
        db=Depends(get_db),
        registrar: VideoRegistrar = Depends(get_video_registrar),
        notifier: ChangeNotifier = Depends(get_change_notifier),
) -> ReactionsService:
    return ReactionsService(
        db,
        registrar,
        notifier,
        atomic_upsert=settings.atomic_reaction_upsert,
    )
