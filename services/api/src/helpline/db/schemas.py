"""Pydantic schemas for stored documents and the joined history view."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from services.api.src.helpline.schemas.enums import MessageStatus, UserRole


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Stored documents
# ============================================================================

class UserRecord(BaseModel):
    id: str
    email: str
    name: str = ""
    role: UserRole
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class MessageRecord(BaseModel):
    """A recorded message as stored in the `messages` collection."""
    id: str
    user_id: str
    status: MessageStatus = MessageStatus.PENDING
    audio_url: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    transcription_text: str | None = None
    translated_text: str | None = None
    translated_audio_url: str | None = None
    error_message: str | None = None
    sent_at: datetime
    last_response_at: datetime | None = None

    @field_validator("sent_at", "last_response_at")
    @classmethod
    def timestamps_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class ResponseRecord(BaseModel):
    """An agent reply as stored in the `responses` collection."""
    id: str
    message_id: str
    agent_id: str
    user_id: str
    response_text: str = ""
    audio_url: str | None = None
    sent_at: datetime
    is_read: bool = False

    @field_validator("sent_at")
    @classmethod
    def sent_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


# ============================================================================
# Derived views
# ============================================================================

class MessageWithResponses(MessageRecord):
    """A message joined with its responses, oldest response first."""
    responses: list[ResponseRecord] = Field(default_factory=list)

    @property
    def has_unread(self) -> bool:
        return any(not r.is_read for r in self.responses)

    @property
    def unread_count(self) -> int:
        return sum(1 for r in self.responses if not r.is_read)


class HistoryView(BaseModel):
    """Everything one party's dashboard renders, recomputed on each update."""
    messages: list[MessageWithResponses] = Field(default_factory=list)
    has_unread: bool = False


class MessageStats(BaseModel):
    total_messages: int = 0
    responded_messages: int = 0
    processing_messages: int = 0
    pending_messages: int = 0
    total_responses: int = 0
    response_rate: int = 0
    avg_response_minutes: int | None = None
    avg_response_time: str = "N/A"


class UnreadSummary(BaseModel):
    message_id: str
    unread_count: int
    sent_at: datetime


class Notifications(BaseModel):
    unread_responses_count: int = 0
    messages_with_unread: list[UnreadSummary] = Field(default_factory=list)
    awaiting_response_count: int = 0
