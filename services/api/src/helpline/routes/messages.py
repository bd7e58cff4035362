"""Reporting-party endpoints: submit recordings, read history and replies."""

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile
from pydantic import ValidationError
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from services.api.src.helpline.config import settings
from services.api.src.helpline.core.location import from_coordinates
from services.api.src.helpline.core.messaging import (
    load_user_history,
    mark_message_responses_read,
    message_detail,
    submit_recording,
)
from services.api.src.helpline.core.pipeline import ProcessFn, run_message_pipeline
from services.api.src.helpline.core.reconcile import build_notifications, summarize
from services.api.src.helpline.core.storage import AudioStorage, StorageError
from services.api.src.helpline.db.repository import MessageRepository, ResponseRepository
from services.api.src.helpline.db.schemas import (
    HistoryView,
    MessageRecord,
    MessageStats,
    Notifications,
    ResponseRecord,
)
from services.api.src.helpline.routes.deps import _engine, _process_fn, _storage, require_role
from services.api.src.helpline.schemas.enums import UserRole
from services.api.src.helpline.schemas.responses import (
    MarkReadResponse,
    MessageDetail,
    ResponseReadResponse,
    SubmitMessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

reporting_party = require_role(UserRole.USER)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@router.post("/messages", response_model=SubmitMessageResponse)
async def submit_message(
    audio: UploadFile,
    latitude: float | None = Form(None),
    longitude: float | None = Form(None),
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
    storage: AudioStorage = Depends(_storage),
    process_fn: ProcessFn = Depends(_process_fn),
) -> SubmitMessageResponse:
    """Store a recording, then run it through the speech pipeline."""
    audio_bytes = await audio.read()
    if not audio_bytes:
        raise HTTPException(400, "No audio data received")
    if len(audio_bytes) > settings.max_audio_bytes:
        raise HTTPException(413, "Audio file too large")

    try:
        location = from_coordinates(latitude, longitude)
    except ValidationError:
        raise HTTPException(422, "Invalid location coordinates")

    try:
        message = await run_in_threadpool(
            submit_recording, engine, storage, user["id"], audio_bytes, location,
        )
    except (OSError, StorageError):
        raise HTTPException(502, "Failed to upload audio")

    result = await run_in_threadpool(
        run_message_pipeline,
        message_id=message["id"],
        audio_bytes=audio_bytes,
        engine=engine,
        process_fn=process_fn,
        storage=storage,
    )

    row = MessageRepository(engine).get(message["id"])
    return SubmitMessageResponse(
        message=MessageRecord.model_validate(row),
        pipeline_error=result.error,
    )


@router.get("/messages", response_model=HistoryView)
def list_messages(
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> HistoryView:
    """The caller's messages, newest first, each with its responses."""
    return load_user_history(engine, user["id"])


@router.get("/messages/{message_id}", response_model=MessageDetail)
def get_message(
    message_id: str,
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> MessageDetail:
    view = load_user_history(engine, user["id"])
    for message in view.messages:
        if message.id == message_id:
            return message_detail(message)
    raise HTTPException(404, "Message not found")


@router.post("/messages/{message_id}/read", response_model=MarkReadResponse)
def mark_message_read(
    message_id: str,
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> MarkReadResponse:
    """Mark every response under one of the caller's messages as read."""
    message = MessageRepository(engine).get(message_id)
    if not message or message["user_id"] != user["id"]:
        raise HTTPException(404, "Message not found")
    return MarkReadResponse(marked_read=mark_message_responses_read(engine, message_id, user["id"]))


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

@router.get("/responses/unread", response_model=list[ResponseRecord])
def list_unread_responses(
    limit: int = 5,
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> list[ResponseRecord]:
    rows = ResponseRepository(engine).list_unread(user["id"], limit=max(1, min(limit, 50)))
    return [ResponseRecord.model_validate(r) for r in rows]


@router.post("/responses/{response_id}/read", response_model=ResponseReadResponse)
def mark_response_read(
    response_id: str,
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> ResponseReadResponse:
    repo = ResponseRepository(engine)
    row = repo.get(response_id)
    if not row or row["user_id"] != user["id"]:
        raise HTTPException(404, "Response not found")
    repo.mark_read(response_id)
    return ResponseReadResponse(id=response_id, is_read=True)


# ---------------------------------------------------------------------------
# Dashboard summaries
# ---------------------------------------------------------------------------

@router.get("/notifications", response_model=Notifications)
def get_notifications(
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> Notifications:
    return build_notifications(load_user_history(engine, user["id"]).messages)


@router.get("/stats", response_model=MessageStats)
def get_stats(
    user: dict = Depends(reporting_party),
    engine: Engine = Depends(_engine),
) -> MessageStats:
    return summarize(load_user_history(engine, user["id"]).messages)
