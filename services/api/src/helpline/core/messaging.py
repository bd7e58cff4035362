"""Message submission, agent responses and read-state updates."""

import logging
from typing import Callable

from sqlalchemy.engine import Engine

from services.api.src.helpline.core.location import (
    Location,
    acquire_location,
    format_location,
    from_coordinates,
    maps_url,
)
from services.api.src.helpline.core.reconcile import build_view, describe_status
from services.api.src.helpline.core.storage import (
    AudioStorage,
    StorageError,
    recording_key,
    response_audio_key,
)
from services.api.src.helpline.db.repository import MessageRepository, ResponseRepository
from services.api.src.helpline.db.schemas import HistoryView, MessageWithResponses
from services.api.src.helpline.schemas.responses import MessageDetail, UserInfoResponse

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to upload audio"


class MessageNotFoundError(LookupError):
    pass


def submit_recording(
    engine: Engine,
    storage: AudioStorage,
    user_id: str,
    audio_bytes: bytes,
    location: Location | None = None,
    *,
    locate: Callable[[], Location | dict] | None = None,
) -> dict:
    """Create a message for a recording and store its audio.

    The message starts as `pending` and becomes `sent` once the blob is
    written. If no location is given but `locate` is, one bounded position
    fetch is attempted first.
    """
    if location is None and locate is not None:
        location = acquire_location(locate)

    msg_repo = MessageRepository(engine)
    message = msg_repo.create(
        user_id,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
    )

    try:
        audio_url = storage.put(recording_key(message["id"]), audio_bytes)
    except (OSError, StorageError) as exc:
        logger.error("recording_upload_failed", extra={
            "message_id": message["id"], "error": str(exc),
        })
        msg_repo.set_error(message["id"], UPLOAD_FAILED_MESSAGE)
        raise

    row = msg_repo.set_audio(message["id"], audio_url)
    logger.info("message_submitted", extra={
        "message_id": message["id"],
        "user_id": user_id,
        "has_location": location is not None,
        "audio_bytes": len(audio_bytes),
    })
    return row


def create_agent_response(
    engine: Engine,
    storage: AudioStorage,
    message_id: str,
    agent_id: str,
    response_text: str,
    audio_bytes: bytes | None = None,
) -> dict:
    """Record an agent reply (text and/or audio) and mark the message responded."""
    response_text = (response_text or "").strip()
    if not response_text and not audio_bytes:
        raise ValueError("Please provide a text response or record an audio response")

    msg_repo = MessageRepository(engine)
    message = msg_repo.get(message_id)
    if not message:
        raise MessageNotFoundError(message_id)

    resp_repo = ResponseRepository(engine)
    row = resp_repo.create(
        message_id=message_id,
        user_id=message["user_id"],
        agent_id=agent_id,
        response_text=response_text,
    )

    if audio_bytes:
        try:
            audio_url = storage.put(response_audio_key(row["id"]), audio_bytes)
        except (OSError, StorageError) as exc:
            logger.error("response_audio_store_failed", extra={
                "message_id": message_id, "response_id": row["id"], "error": str(exc),
            })
            # Drop the half-written reply so the user is not shown an empty one.
            resp_repo.delete(row["id"])
            raise
        row = resp_repo.set_audio(row["id"], audio_url)

    msg_repo.mark_responded(message_id)

    logger.info("response_created", extra={
        "message_id": message_id,
        "response_id": row["id"],
        "agent_id": agent_id,
        "has_audio": bool(audio_bytes),
    })
    return row


def mark_message_responses_read(engine: Engine, message_id: str, user_id: str) -> int:
    """Mark every unread response under a message as read by its recipient."""
    count = ResponseRepository(engine).mark_all_read(message_id, user_id)
    if count:
        logger.info("responses_marked_read", extra={
            "message_id": message_id, "user_id": user_id, "count": count,
        })
    return count


def load_user_history(engine: Engine, user_id: str) -> HistoryView:
    """One-shot fetch of a user's messages joined with their responses."""
    return build_view(
        MessageRepository(engine).list_by_user(user_id),
        ResponseRepository(engine).list_by_user(user_id),
    )


def message_detail(message: MessageWithResponses, author: dict | None = None) -> MessageDetail:
    """Add status text, location display and optionally the author's name."""
    location = from_coordinates(message.latitude, message.longitude)
    return MessageDetail(
        **message.model_dump(),
        status_text=describe_status(message.status, len(message.responses)),
        location_text=format_location(location) if location else None,
        maps_url=maps_url(location) if location else None,
        author=UserInfoResponse(**author) if author else None,
    )
