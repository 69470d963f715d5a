from http import HTTPStatus
import pytest
from reaction_api.api.http_utils import (
    handle_runtime_errors,
    not_found_if_none,
    unprocessable_if_false,
)
from fastapi import HTTPException


def test_not_found_if_none_raises_404_with_default_detail():
    with pytest.raises(HTTPException) as e:
        not_found_if_none(None)
    assert e.value.status_code == HTTPStatus.NOT_FOUND
    assert e.value.detail == "video_not_found"


def test_not_found_if_none_passes_value_through():
    assert not_found_if_none({"id": 1}) == {"id": 1}


def test_unprocessable_if_false():
    unprocessable_if_false(True, "x")
    with pytest.raises(HTTPException) as e:
        unprocessable_if_false(False, "invalid_reaction")
    assert e.value.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert e.value.detail == "invalid_reaction"


async def test_handle_runtime_errors_maps_by_message_prefix():
    @handle_runtime_errors({"reaction_insert_error": 503})
    async def fn():
        raise RuntimeError("reaction_insert_error: duplicate key")
    with pytest.raises(HTTPException) as e:
        await fn()
    assert e.value.status_code == 503
    assert e.value.detail == "reaction_insert_error"


async def test_handle_runtime_errors_maps_unknown_to_500():
    @handle_runtime_errors({"known": HTTPStatus.BAD_REQUEST})
    async def fn():
        raise RuntimeError("something else")
    with pytest.raises(HTTPException) as e:
        await fn()
    assert e.value.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert e.value.detail == "internal_error"


async def test_handle_runtime_errors_happy_path_returns_value():
    @handle_runtime_errors({"x": HTTPStatus.BAD_REQUEST})
    async def ok():
        return "ok"
    assert await ok() == "ok"
