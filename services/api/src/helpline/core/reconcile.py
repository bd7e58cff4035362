"""Message/response reconciliation.

Joins a party's message list with its response list on `message_id` and
derives read state. Every function here recomputes from scratch, so the
result does not depend on the order updates arrive in.
"""

import logging
import threading
from typing import Callable, Iterable, Mapping

from services.api.src.helpline.db.schemas import (
    HistoryView,
    MessageRecord,
    MessageStats,
    MessageWithResponses,
    Notifications,
    ResponseRecord,
    UnreadSummary,
)
from services.api.src.helpline.schemas.enums import MessageStatus

logger = logging.getLogger(__name__)


def _as_message(item) -> MessageRecord:
    if isinstance(item, MessageRecord):
        return item
    return MessageRecord.model_validate(dict(item))


def _as_response(item) -> ResponseRecord:
    if isinstance(item, ResponseRecord):
        return item
    return ResponseRecord.model_validate(dict(item))


def _response_order(response: ResponseRecord):
    return (response.sent_at, response.id)


def attach_responses(
    messages: Iterable[MessageRecord | Mapping],
    responses: Iterable[ResponseRecord | Mapping],
) -> list[MessageWithResponses]:
    """Group responses under their parent message, oldest response first.

    Message order is kept as given. Responses whose parent is not in
    `messages` are dropped.
    """
    by_message: dict[str, list[ResponseRecord]] = {}
    for item in responses:
        response = _as_response(item)
        by_message.setdefault(response.message_id, []).append(response)

    joined = []
    for item in messages:
        message = _as_message(item)
        matched = sorted(by_message.get(message.id, []), key=_response_order)
        fields = message.model_dump(exclude={"responses"})
        joined.append(MessageWithResponses(**fields, responses=matched))
    return joined


def has_unread(history: Iterable[MessageWithResponses]) -> bool:
    return any(not r.is_read for m in history for r in m.responses)


def unread_count(history: Iterable[MessageWithResponses]) -> int:
    return sum(m.unread_count for m in history)


def messages_with_unread(history: Iterable[MessageWithResponses]) -> list[MessageWithResponses]:
    return [m for m in history if m.has_unread]


def awaiting_response_count(history: Iterable[MessageWithResponses]) -> int:
    return sum(1 for m in history if m.status == MessageStatus.PROCESSED)


def build_view(
    messages: Iterable[MessageRecord | Mapping],
    responses: Iterable[ResponseRecord | Mapping],
) -> HistoryView:
    joined = attach_responses(messages, responses)
    return HistoryView(messages=joined, has_unread=has_unread(joined))


def build_notifications(history: list[MessageWithResponses]) -> Notifications:
    unread = messages_with_unread(history)
    return Notifications(
        unread_responses_count=unread_count(unread),
        messages_with_unread=[
            UnreadSummary(message_id=m.id, unread_count=m.unread_count, sent_at=m.sent_at)
            for m in unread
        ],
        awaiting_response_count=awaiting_response_count(history),
    )


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    return f"{minutes // 60}h {minutes % 60}m"


def summarize(history: list[MessageWithResponses]) -> MessageStats:
    """Counts, response rate and average first-to-last response time."""
    total = len(history)
    if total == 0:
        return MessageStats()

    responded = sum(1 for m in history if m.status == MessageStatus.RESPONDED)
    processing = sum(1 for m in history if m.status == MessageStatus.PROCESSED)
    pending = sum(
        1 for m in history if m.status in (MessageStatus.PENDING, MessageStatus.SENT)
    )

    timed = [m for m in history if m.responses and m.last_response_at]
    avg_minutes = None
    if timed:
        total_minutes = sum(
            (m.last_response_at - m.sent_at).total_seconds() / 60 for m in timed
        )
        avg_minutes = round(total_minutes / len(timed))

    return MessageStats(
        total_messages=total,
        responded_messages=responded,
        processing_messages=processing,
        pending_messages=pending,
        total_responses=sum(len(m.responses) for m in history),
        response_rate=round(responded / total * 100),
        avg_response_minutes=avg_minutes,
        avg_response_time=format_duration(avg_minutes) if avg_minutes is not None else "N/A",
    )


def describe_status(status: MessageStatus | str, response_count: int = 0) -> str:
    """User-facing explanation of where a message is in its lifecycle."""
    status = MessageStatus(status)
    if status == MessageStatus.PENDING:
        return "Your message is being prepared for processing"
    if status == MessageStatus.SENT:
        return "Your message has been sent and is awaiting processing"
    if status == MessageStatus.PROCESSED:
        return "Your message has been processed and is waiting for an agent to review"
    if status == MessageStatus.RESPONDED:
        text = "Your message has been reviewed by an agent"
        if response_count > 0:
            noun = "response" if response_count == 1 else "responses"
            text += f" and has {response_count} {noun}"
        return text
    return "There was an error processing your message"


class HistorySync:
    """Keeps one party's joined view current as either stream updates.

    `on_messages` and `on_responses` each replace their side wholesale and
    trigger a full recompute; `callback` receives the new HistoryView.
    Views are emitted under the same lock, so the last one emitted is the
    latest recompute.
    """

    def __init__(self, callback: Callable[[HistoryView], None]):
        self._callback = callback
        self._lock = threading.RLock()
        self._messages: list[MessageRecord] = []
        self._responses: list[ResponseRecord] = []
        self.view = HistoryView()

    def on_messages(self, snapshot: Iterable[MessageRecord | Mapping]) -> None:
        with self._lock:
            self._messages = [_as_message(m) for m in snapshot]
            self._emit(self._recompute())

    def on_responses(self, snapshot: Iterable[ResponseRecord | Mapping]) -> None:
        with self._lock:
            self._responses = [_as_response(r) for r in snapshot]
            self._emit(self._recompute())

    def _recompute(self) -> HistoryView:
        self.view = build_view(self._messages, self._responses)
        return self.view

    def _emit(self, view: HistoryView) -> None:
        logger.debug("history_recomputed", extra={
            "messages": len(view.messages), "has_unread": view.has_unread,
        })
        self._callback(view)
