import logging
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from reaction_api.core.config import settings
from reaction_api.dependencies import (
    get_change_notifier,
    get_identity_resolver,
    get_reactions_service,
)
from reaction_api.models.reactions import SessionCommand
from reaction_api.models.session import SessionState, SessionStateMessage
from reaction_api.services.identity_service import IdentityResolver
from reaction_api.services.notifier import ChangeNotifier
from reaction_api.services.playback_gate import evaluate_gate
from reaction_api.services.reactions_service import (
    ReactionsService,
    ReactionWriteError,
)
from reaction_api.services.session_controller import ReactionSessionController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/videos", tags=["sessions"])


def state_message(state: SessionState) -> dict:
    msg = SessionStateMessage(**state.model_dump(), gate=evaluate_gate(state))
    return msg.model_dump(mode="json")


def error_message(detail: str) -> dict:
    return {"type": "error", "detail": detail}


@router.websocket("/{video_id}/session")
async def reaction_session(
    websocket: WebSocket,
    video_id: str,
    svc: ReactionsService = Depends(get_reactions_service),
    notifier: ChangeNotifier = Depends(get_change_notifier),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> None:
    await websocket.accept()

    async def push(state: SessionState) -> None:
        await websocket.send_json(state_message(state))

    controller = ReactionSessionController(
        svc,
        resolver,
        notifier,
        reconcile_delay=settings.reconcile_delay_s,
        on_change=push,
    )
    try:
        await controller.mount(video_id)
        while True:
            raw = await websocket.receive_text()
            try:
                cmd = SessionCommand.model_validate_json(raw)
            except ValidationError:
                await websocket.send_json(error_message("invalid_command"))
                continue

            if cmd.action == "watch":
                await controller.change_video(cmd.video_id or "")
                continue
            try:
                applied = await controller.add_reaction(
                    cmd.reaction_type or "")
            except ReactionWriteError:
                await websocket.send_json(
                    error_message("reaction_insert_error"))
                continue
            if not applied:
                await websocket.send_json(error_message("invalid_reaction"))
    except WebSocketDisconnect:
        logger.info("session_disconnected")
    finally:
        await controller.close()
