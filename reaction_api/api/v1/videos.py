from http import HTTPStatus
from fastapi import APIRouter, Depends, HTTPException
from reaction_api.api.http_utils import not_found_if_none
from reaction_api.core.validation import is_valid_video_id
from reaction_api.dependencies import get_video_registrar
from reaction_api.models.videos import (
    Video,
    VideoEnsureResponse,
    VideoViewsResponse,
)
from reaction_api.services.video_registrar import VideoRegistrar

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])


@router.put(
    "/{video_id}",
    response_model=VideoEnsureResponse,
    status_code=HTTPStatus.OK)
async def ensure_video(
    video_id: str,
    registrar: VideoRegistrar = Depends(get_video_registrar),
) -> VideoEnsureResponse:
    if not is_valid_video_id(video_id):
        raise HTTPException(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            detail="invalid_video_id")
    row_id = await registrar.ensure_video(video_id)
    if row_id is None:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="video_store_unavailable")
    return VideoEnsureResponse(video_id=video_id, id=row_id)


@router.get("/{video_id}", response_model=Video, status_code=HTTPStatus.OK)
async def get_video(
    video_id: str,
    registrar: VideoRegistrar = Depends(get_video_registrar),
) -> Video:
    doc = not_found_if_none(await registrar.get_video(video_id))
    doc["id"] = str(doc.pop("_id"))
    return Video(**doc)


@router.post(
    "/{video_id}/views",
    response_model=VideoViewsResponse,
    status_code=HTTPStatus.OK)
async def record_view(
    video_id: str,
    registrar: VideoRegistrar = Depends(get_video_registrar),
) -> VideoViewsResponse:
    if not is_valid_video_id(video_id):
        raise HTTPException(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            detail="invalid_video_id")
    views = await registrar.record_view(video_id)
    if views is None:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="video_store_unavailable")
    return VideoViewsResponse(video_id=video_id, views_count=views)
