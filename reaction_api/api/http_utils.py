import logging
from functools import wraps
from http import HTTPStatus
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def handle_runtime_errors(mapping: dict[str, HTTPStatus]):
    """
    Переводит RuntimeError с «текстовыми кодами» в HTTPException.
    Пример mapping: {"reaction_insert_error": 503}
    """
    def decorator(fn):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except RuntimeError as e:
                msg = str(e)
                for key, status in mapping.items():
                    if msg.startswith(key):
                        raise HTTPException(status_code=status, detail=key)
                logger.exception("unmapped_runtime_error")
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail="internal_error")
        return wrapper
    return decorator


def unprocessable_if_false(applied: bool, detail: str) -> None:
    """Сервис вернул False = вход не прошёл валидацию: отвечаем 422."""
    if not applied:
        raise HTTPException(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=detail)


def not_found_if_none(value, detail: str = "video_not_found"):
    """Если результат None, бросаем 404."""
    if value is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=detail)
    return value
