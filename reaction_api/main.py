import logging

from fastapi import FastAPI
from pymongo.errors import PyMongoError

from contextlib import asynccontextmanager
from reaction_api.db.mongo import close_client, get_mongo_db, ping

from reaction_api.core.logger import setup_json_logging, shutdown_logging
from reaction_api.core.sentry import init_sentry
from reaction_api.core.config import settings
from reaction_api.core.middleware import RequestContextMiddleware
from reaction_api.services.notifier import ReactionChangeStream, reset_notifier
from reaction_api.services.repositories.reactions_repo import ReactionsRepo
from reaction_api.services.repositories.videos_repo import VideosRepo

from reaction_api.api.v1.identity import router as identity_router
from reaction_api.api.v1.reactions import router as reactions_router
from reaction_api.api.v1.sessions import router as sessions_router
from reaction_api.api.v1.videos import router as videos_router
from reaction_api.api.v1.debug import include_debug_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 1) логи до всего
    setup_json_logging(service=settings.app_name)
    init_sentry(settings.sentry_dsn, environment=settings.env,
                service=settings.app_name)

    # 2) Motor-клиент + индексы
    db = await get_mongo_db()
    try:
        await ReactionsRepo(db).ensure_indexes()
        await VideosRepo(db).ensure_indexes()
    except PyMongoError as e:
        logger.warning("ensure_indexes_failed", extra={"err": str(e)})

    # 3) источник уведомлений: change stream между процессами
    # или локальная рассылка внутри одного процесса
    stream = None
    if settings.change_stream_enabled:
        notifier = reset_notifier(local_fanout=False)
        stream = ReactionChangeStream(
            db, notifier, retry_delay=settings.change_stream_retry_s)
        stream.start()

    try:
        yield
    finally:
        if stream is not None:
            await stream.stop()
        await close_client()
        shutdown_logging()


app = FastAPI(title="Reaction Gate Service", lifespan=lifespan)

# наш trace_id + access JSON
app.add_middleware(RequestContextMiddleware)

# приглушим штатный uvicorn-access, чтобы не было дублей
logging.getLogger("uvicorn.access").setLevel("WARNING")

include_debug_routes(app)


@app.get("/health")
async def health():
    return {"status": "ok", "mongo": "up" if await ping() else "down"}


app.include_router(identity_router)
app.include_router(videos_router)
app.include_router(reactions_router)
app.include_router(sessions_router)
