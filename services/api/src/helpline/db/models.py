"""SQLAlchemy table definitions for the helpline document collections."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    false,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("name", String(200), nullable=False, server_default=""),
    Column("role", String(16), nullable=False),
    Column("password_hash", String, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("role IN ('user', 'agent')", name="ck_users_role"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False),
    Column("status", String(16), nullable=False, server_default="pending"),
    Column("audio_url", String, nullable=True),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("transcription_text", Text, nullable=True),
    Column("translated_text", Text, nullable=True),
    Column("translated_audio_url", String, nullable=True),
    Column("error_message", String, nullable=True),
    Column("sent_at", DateTime(timezone=True), nullable=False),
    Column("last_response_at", DateTime(timezone=True), nullable=True),
    CheckConstraint(
        "status IN ('pending', 'sent', 'processed', 'responded', 'error')",
        name="ck_messages_status",
    ),
    Index("ix_messages_user", "user_id"),
    Index("ix_messages_sent", "sent_at"),
)

responses = Table(
    "responses",
    metadata,
    Column("id", String, primary_key=True),
    Column("message_id", String, ForeignKey("messages.id"), nullable=False),
    Column("agent_id", String, ForeignKey("users.id"), nullable=False),
    Column("user_id", String, ForeignKey("users.id"), nullable=False),
    Column("response_text", Text, nullable=False, server_default=""),
    Column("audio_url", String, nullable=True),
    Column("sent_at", DateTime(timezone=True), nullable=False),
    Column("is_read", Boolean, nullable=False, server_default=false()),
    Index("ix_responses_message", "message_id"),
    Index("ix_responses_user", "user_id"),
    Index("ix_responses_sent", "sent_at"),
)
