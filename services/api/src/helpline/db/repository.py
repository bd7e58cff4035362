"""Repository classes for helpline data access.

Every committed write is published to the change feed so that live
listeners re-query their snapshot.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine

from services.api.src.helpline.core.feed import ChangeFeed, default_feed
from services.api.src.helpline.db.models import messages, responses, users
from services.api.src.helpline.schemas.enums import MessageStatus

UNKNOWN_USER_NAME = "Unknown User"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class _Repository:
    collection: str = ""
    table = None

    def __init__(self, engine: Engine, feed: ChangeFeed | None = None):
        self.engine = engine
        self.feed = feed or default_feed

    def get(self, doc_id: str) -> dict | None:
        with self.engine.connect() as conn:
            result = conn.execute(select(self.table).where(self.table.c.id == doc_id))
            row = result.mappings().first()
            return dict(row) if row else None

    def _update(self, doc_id: str, **values) -> dict | None:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(self.table).where(self.table.c.id == doc_id).values(**values)
            )
            if result.rowcount == 0:
                return None
        row = self.get(doc_id)
        self._publish(row)
        return row

    def _publish(self, row: dict | None) -> None:
        if row is not None:
            self.feed.publish(self.collection, row)


class UserRepository(_Repository):
    """Account records kept alongside the identity provider."""

    collection = "users"
    table = users

    def create(self, email: str, name: str, role: str, password_hash: str) -> dict:
        row = {
            "id": _new_id(),
            "email": email.strip().lower(),
            "name": name,
            "role": role,
            "password_hash": password_hash,
            "created_at": _now(),
        }
        with self.engine.begin() as conn:
            conn.execute(users.insert().values(row))
        self._publish(row)
        return row

    def get_by_email(self, email: str) -> dict | None:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(users).where(users.c.email == email.strip().lower())
            )
            row = result.mappings().first()
            return dict(row) if row else None

    def get_info(self, user_id: str) -> dict:
        """Display name and email, with a placeholder for unknown ids."""
        row = self.get(user_id)
        if not row:
            return {"name": UNKNOWN_USER_NAME, "email": ""}
        return {"name": row["name"] or UNKNOWN_USER_NAME, "email": row["email"] or ""}


class MessageRepository(_Repository):
    """Data access for recorded messages."""

    collection = "messages"
    table = messages

    def create(
        self,
        user_id: str,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> dict:
        row = {
            "id": _new_id(),
            "user_id": user_id,
            "status": MessageStatus.PENDING.value,
            "audio_url": None,
            "latitude": latitude,
            "longitude": longitude,
            "transcription_text": None,
            "translated_text": None,
            "translated_audio_url": None,
            "error_message": None,
            "sent_at": _now(),
            "last_response_at": None,
        }
        with self.engine.begin() as conn:
            conn.execute(messages.insert().values(row))
        self._publish(row)
        return row

    def list_by_user(self, user_id: str) -> list[dict]:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(messages)
                .where(messages.c.user_id == user_id)
                .order_by(messages.c.sent_at.desc())
            )
            return [dict(row) for row in result.mappings()]

    def list_all(self, limit: int | None = None) -> list[dict]:
        stmt = select(messages).order_by(messages.c.sent_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings()]

    def set_audio(self, message_id: str, audio_url: str) -> dict | None:
        return self._update(
            message_id, audio_url=audio_url, status=MessageStatus.SENT.value,
        )

    def set_processed(
        self,
        message_id: str,
        transcription_text: str,
        translated_text: str,
        translated_audio_url: str | None = None,
    ) -> dict | None:
        return self._update(
            message_id,
            transcription_text=transcription_text,
            translated_text=translated_text,
            translated_audio_url=translated_audio_url,
            status=MessageStatus.PROCESSED.value,
        )

    def set_error(self, message_id: str, error_message: str) -> dict | None:
        return self._update(
            message_id, status=MessageStatus.ERROR.value, error_message=error_message,
        )

    def mark_responded(self, message_id: str) -> dict | None:
        return self._update(
            message_id, status=MessageStatus.RESPONDED.value, last_response_at=_now(),
        )


class ResponseRepository(_Repository):
    """Data access for agent responses."""

    collection = "responses"
    table = responses

    def create(
        self,
        message_id: str,
        user_id: str,
        agent_id: str,
        response_text: str,
    ) -> dict:
        row = {
            "id": _new_id(),
            "message_id": message_id,
            "agent_id": agent_id,
            "user_id": user_id,
            "response_text": response_text,
            "audio_url": None,
            "sent_at": _now(),
            "is_read": False,
        }
        with self.engine.begin() as conn:
            conn.execute(responses.insert().values(row))
        self._publish(row)
        return row

    def set_audio(self, response_id: str, audio_url: str) -> dict | None:
        return self._update(response_id, audio_url=audio_url)

    def delete(self, response_id: str) -> bool:
        """Remove a response. Listeners re-query and no longer see it."""
        row = self.get(response_id)
        if row is None:
            return False
        with self.engine.begin() as conn:
            conn.execute(delete(responses).where(responses.c.id == response_id))
        self._publish(row)
        return True

    def list_by_message(self, message_id: str) -> list[dict]:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(responses)
                .where(responses.c.message_id == message_id)
                .order_by(responses.c.sent_at.asc())
            )
            return [dict(row) for row in result.mappings()]

    def list_by_user(self, user_id: str) -> list[dict]:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(responses)
                .where(responses.c.user_id == user_id)
                .order_by(responses.c.sent_at.desc())
            )
            return [dict(row) for row in result.mappings()]

    def list_unread(self, user_id: str, limit: int = 5) -> list[dict]:
        """Latest unread responses for a user, newest first."""
        with self.engine.connect() as conn:
            result = conn.execute(
                select(responses)
                .where(responses.c.user_id == user_id, responses.c.is_read.is_(False))
                .order_by(responses.c.sent_at.desc())
                .limit(limit)
            )
            return [dict(row) for row in result.mappings()]

    def mark_read(self, response_id: str) -> bool:
        """Flip is_read to True. Returns False if the response does not exist."""
        row = self.get(response_id)
        if row is None:
            return False
        if not row["is_read"]:
            self._update(response_id, is_read=True)
        return True

    def mark_all_read(self, message_id: str, user_id: str) -> int:
        """Mark every unread response to `user_id` under a message. Returns count flipped."""
        with self.engine.connect() as conn:
            result = conn.execute(
                select(responses.c.id).where(
                    responses.c.message_id == message_id,
                    responses.c.user_id == user_id,
                    responses.c.is_read.is_(False),
                )
            )
            unread_ids = [row[0] for row in result]

        for response_id in unread_ids:
            self._update(response_id, is_read=True)
        return len(unread_ids)
