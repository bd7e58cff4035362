"""Live queries over the messages and responses collections."""

from typing import Callable

from sqlalchemy.engine import Engine

from services.api.src.helpline.core.feed import ChangeFeed, default_feed
from services.api.src.helpline.core.reconcile import HistorySync
from services.api.src.helpline.db.repository import MessageRepository, ResponseRepository
from services.api.src.helpline.db.schemas import HistoryView

Unsubscribe = Callable[[], None]


def watch_user_messages(
    engine: Engine, user_id: str, callback, feed: ChangeFeed | None = None,
) -> Unsubscribe:
    feed = feed or default_feed
    repo = MessageRepository(engine, feed)
    return feed.subscribe(
        "messages",
        lambda: repo.list_by_user(user_id),
        callback,
        match=lambda doc: doc.get("user_id") == user_id,
    )


def watch_all_messages(engine: Engine, callback, feed: ChangeFeed | None = None) -> Unsubscribe:
    feed = feed or default_feed
    repo = MessageRepository(engine, feed)
    return feed.subscribe("messages", repo.list_all, callback)


def watch_message_responses(
    engine: Engine, message_id: str, callback, feed: ChangeFeed | None = None,
) -> Unsubscribe:
    feed = feed or default_feed
    repo = ResponseRepository(engine, feed)
    return feed.subscribe(
        "responses",
        lambda: repo.list_by_message(message_id),
        callback,
        match=lambda doc: doc.get("message_id") == message_id,
    )


def watch_user_responses(
    engine: Engine, user_id: str, callback, feed: ChangeFeed | None = None,
) -> Unsubscribe:
    feed = feed or default_feed
    repo = ResponseRepository(engine, feed)
    return feed.subscribe(
        "responses",
        lambda: repo.list_by_user(user_id),
        callback,
        match=lambda doc: doc.get("user_id") == user_id,
    )


def watch_user_history(
    engine: Engine,
    user_id: str,
    callback: Callable[[HistoryView], None],
    feed: ChangeFeed | None = None,
) -> Unsubscribe:
    """Combine a user's message and response streams into one joined view.

    The returned callable detaches both listeners.
    """
    sync = HistorySync(callback)
    stop_messages = watch_user_messages(engine, user_id, sync.on_messages, feed)
    stop_responses = watch_user_responses(engine, user_id, sync.on_responses, feed)

    def unsubscribe() -> None:
        stop_messages()
        stop_responses()

    return unsubscribe
