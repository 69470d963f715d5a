from http import HTTPStatus
from fastapi import APIRouter, Depends, Response
from reaction_api.api.http_utils import (
    handle_runtime_errors,
    unprocessable_if_false,
)
from reaction_api.dependencies import client_identity, get_reactions_service
from reaction_api.models.reactions import (
    ReactionCountsResponse,
    ReactionSetRequest,
    ReactionStatusResponse,
    VideoReactionCount,
)
from reaction_api.services.reactions_service import ReactionsService

router = APIRouter(prefix="/api/v1/reactions", tags=["reactions"])


# объявлен раньше /{video_id}/..., чтобы "counts" не принять за video_id
@router.get(
    "/counts",
    response_model=list[VideoReactionCount],
    status_code=HTTPStatus.OK)
async def get_all_reaction_counts(
    svc: ReactionsService = Depends(get_reactions_service),
) -> list[VideoReactionCount]:
    return await svc.get_all_counts()


@router.get(
    "/{video_id}/status",
    response_model=ReactionStatusResponse,
    status_code=HTTPStatus.OK)
async def get_reaction_status(
    video_id: str,
    ip_address: str = Depends(client_identity),
    svc: ReactionsService = Depends(get_reactions_service),
) -> ReactionStatusResponse:
    status = await svc.get_status(video_id, ip_address)
    return ReactionStatusResponse(
        video_id=video_id,
        ip_address=ip_address,
        **status.model_dump(),
    )


@router.get(
    "/{video_id}/counts",
    response_model=ReactionCountsResponse,
    status_code=HTTPStatus.OK)
async def get_reaction_counts(
    video_id: str,
    svc: ReactionsService = Depends(get_reactions_service),
) -> ReactionCountsResponse:
    items = await svc.get_counts(video_id)
    return ReactionCountsResponse(
        video_id=video_id,
        items=items,
        total=sum(item.count for item in items),
    )


@router.put("/{video_id}", status_code=HTTPStatus.NO_CONTENT)
@handle_runtime_errors(
    {"reaction_insert_error": HTTPStatus.SERVICE_UNAVAILABLE})
async def put_reaction(
    video_id: str,
    body: ReactionSetRequest,
    ip_address: str = Depends(client_identity),
    svc: ReactionsService = Depends(get_reactions_service),
) -> Response:
    applied = await svc.add_reaction(video_id, ip_address, body.reaction_type)
    unprocessable_if_false(applied, "invalid_reaction")
    return Response(status_code=HTTPStatus.NO_CONTENT)
