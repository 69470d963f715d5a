from http import HTTPStatus
from fastapi import APIRouter
import sentry_sdk
from reaction_api.core.config import settings

router = APIRouter(tags=["debug"])


@router.get("/__sentry-test", status_code=HTTPStatus.NO_CONTENT)
async def sentry_test():
    sentry_sdk.capture_message(f"Sentry test ping from {settings.app_name}")
    return None


def include_debug_routes(app) -> bool:
    # эндпоинт подключаем только если явно разрешён
    if not settings.sentry_test_enabled:
        return False
    app.include_router(router)
    return True
