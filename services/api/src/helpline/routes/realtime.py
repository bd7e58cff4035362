"""WebSocket push of live dashboard snapshots.

Each socket holds one change-feed subscription; every update to the
underlying collections re-sends the full recomputed snapshot.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from services.api.src.helpline.core.auth import AuthError, resolve_session
from services.api.src.helpline.core.subscriptions import watch_all_messages, watch_user_history
from services.api.src.helpline.db.schemas import HistoryView, MessageRecord
from services.api.src.helpline.routes.deps import _engine
from services.api.src.helpline.schemas.enums import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


async def _authenticate(websocket: WebSocket, engine: Engine, token: str, role: UserRole) -> dict | None:
    try:
        user = await run_in_threadpool(resolve_session, engine, token)
    except AuthError as exc:
        logger.info("ws_auth_rejected", extra={"error": str(exc)})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    if user["role"] != role.value:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    return user


async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        payload = await queue.get()
        await websocket.send_json(payload)


async def _serve(websocket: WebSocket, subscribe) -> None:
    """Accept, subscribe, and forward snapshots until the client disconnects.

    `subscribe(push)` registers the listener and returns its unsubscribe
    callable. `push` may be called from any thread.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(payload: dict) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, payload)

    unsubscribe = await run_in_threadpool(subscribe, push)
    sender = asyncio.create_task(_pump(websocket, queue))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            # The client went away while a snapshot was being sent.
            logger.info("ws_send_failed", extra={"error": str(exc)})


@router.websocket("/ws/history")
async def history_socket(
    websocket: WebSocket,
    token: str = Query(""),
    engine: Engine = Depends(_engine),
) -> None:
    """Live history for a reporting party: messages joined with responses."""
    user = await _authenticate(websocket, engine, token, UserRole.USER)
    if user is None:
        return

    def subscribe(push):
        def on_view(view: HistoryView) -> None:
            push({"type": "history", **view.model_dump(mode="json")})

        return watch_user_history(engine, user["id"], on_view)

    logger.info("ws_history_opened", extra={"user_id": user["id"]})
    await _serve(websocket, subscribe)
    logger.info("ws_history_closed", extra={"user_id": user["id"]})


@router.websocket("/ws/agent/messages")
async def agent_messages_socket(
    websocket: WebSocket,
    token: str = Query(""),
    engine: Engine = Depends(_engine),
) -> None:
    """Live list of every message for operators."""
    agent = await _authenticate(websocket, engine, token, UserRole.AGENT)
    if agent is None:
        return

    def subscribe(push):
        def on_snapshot(rows: list[dict]) -> None:
            push({
                "type": "messages",
                "messages": [MessageRecord.model_validate(r).model_dump(mode="json") for r in rows],
            })

        return watch_all_messages(engine, on_snapshot)

    await _serve(websocket, subscribe)
