"""Pydantic request/response models for helpline API endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from services.api.src.helpline.db.schemas import MessageRecord, MessageWithResponses
from services.api.src.helpline.schemas.enums import UserRole


# -- Requests ---------------------------------------------------------------

class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field("", max_length=200)
    role: UserRole = UserRole.USER


class LoginRequest(BaseModel):
    email: str
    password: str


class ProcessAudioRequest(BaseModel):
    base64Audio: str = ""


# -- Responses ---------------------------------------------------------------

class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class UserInfoResponse(BaseModel):
    name: str
    email: str


class MessageDetail(MessageWithResponses):
    """One message as a dashboard shows it, with display strings filled in."""
    status_text: str
    location_text: str | None = None
    maps_url: str | None = None
    author: UserInfoResponse | None = None


class SubmitMessageResponse(BaseModel):
    message: MessageRecord
    pipeline_error: str | None = None


class MarkReadResponse(BaseModel):
    marked_read: int


class ResponseReadResponse(BaseModel):
    id: str
    is_read: bool
