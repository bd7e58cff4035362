"""Operator endpoints: review messages and send replies."""

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from services.api.src.helpline.config import settings
from services.api.src.helpline.core.messaging import (
    MessageNotFoundError,
    create_agent_response,
    message_detail,
)
from services.api.src.helpline.core.reconcile import attach_responses
from services.api.src.helpline.core.storage import AudioStorage, StorageError
from services.api.src.helpline.db.repository import (
    MessageRepository,
    ResponseRepository,
    UserRepository,
)
from services.api.src.helpline.db.schemas import MessageRecord, ResponseRecord
from services.api.src.helpline.routes.deps import _engine, _storage, require_role
from services.api.src.helpline.schemas.enums import UserRole
from services.api.src.helpline.schemas.responses import MessageDetail, UserInfoResponse

logger = logging.getLogger(__name__)

router = APIRouter()

operator = require_role(UserRole.AGENT)


@router.get("/messages", response_model=list[MessageRecord])
def list_all_messages(
    limit: int | None = Query(None, ge=1),
    agent: dict = Depends(operator),
    engine: Engine = Depends(_engine),
) -> list[MessageRecord]:
    """Every message, newest first."""
    rows = MessageRepository(engine).list_all(limit=limit)
    return [MessageRecord.model_validate(r) for r in rows]


@router.get("/messages/{message_id}", response_model=MessageDetail)
def get_message(
    message_id: str,
    agent: dict = Depends(operator),
    engine: Engine = Depends(_engine),
) -> MessageDetail:
    """A message with its responses and the author's display name."""
    message = MessageRepository(engine).get(message_id)
    if not message:
        raise HTTPException(404, "Message not found")
    responses = ResponseRepository(engine).list_by_message(message_id)
    joined = attach_responses([message], responses)[0]
    return message_detail(joined, author=UserRepository(engine).get_info(message["user_id"]))


@router.get("/messages/{message_id}/responses", response_model=list[ResponseRecord])
def list_message_responses(
    message_id: str,
    agent: dict = Depends(operator),
    engine: Engine = Depends(_engine),
) -> list[ResponseRecord]:
    if not MessageRepository(engine).get(message_id):
        raise HTTPException(404, "Message not found")
    rows = ResponseRepository(engine).list_by_message(message_id)
    return [ResponseRecord.model_validate(r) for r in rows]


@router.post("/messages/{message_id}/responses", response_model=ResponseRecord)
async def send_response(
    message_id: str,
    response_text: str = Form(""),
    audio: UploadFile | None = None,
    agent: dict = Depends(operator),
    engine: Engine = Depends(_engine),
    storage: AudioStorage = Depends(_storage),
) -> ResponseRecord:
    """Reply to a message with text, audio, or both."""
    audio_bytes = await audio.read() if audio is not None else None
    if audio_bytes and len(audio_bytes) > settings.max_audio_bytes:
        raise HTTPException(413, "Audio file too large")

    try:
        row = await run_in_threadpool(
            create_agent_response,
            engine,
            storage,
            message_id,
            agent["id"],
            response_text,
            audio_bytes or None,
        )
    except MessageNotFoundError:
        raise HTTPException(404, "Message not found")
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    except (OSError, StorageError):
        logger.error("response_audio_upload_failed", extra={"message_id": message_id})
        raise HTTPException(502, "Failed to upload audio")

    return ResponseRecord.model_validate(row)


@router.get("/users/{user_id}", response_model=UserInfoResponse)
def get_user_info(
    user_id: str,
    agent: dict = Depends(operator),
    engine: Engine = Depends(_engine),
) -> UserInfoResponse:
    return UserInfoResponse(**UserRepository(engine).get_info(user_id))
