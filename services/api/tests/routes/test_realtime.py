"""Tests for websocket push of live snapshots."""

import asyncio
import logging

import pytest
from starlette.websockets import WebSocketDisconnect

from services.api.src.helpline.core.feed import default_feed
from services.api.src.helpline.routes.realtime import _serve


class TestHistorySocket:
    def test_pushes_joined_view_on_reply(self, client, login_as, submit):
        _, user_headers = login_as("user")
        _, agent_headers = login_as("agent")
        token = user_headers["Authorization"].split()[1]
        message = submit(user_headers)["message"]

        with client.websocket_connect(f"/api/helpline/ws/history?token={token}") as ws:
            # one snapshot per stream on subscribe
            first = ws.receive_json()
            second = ws.receive_json()
            assert first["type"] == second["type"] == "history"
            assert [m["id"] for m in second["messages"]] == [message["id"]]
            assert second["has_unread"] is False

            res = client.post(
                f"/api/helpline/agent/messages/{message['id']}/responses",
                data={"response_text": "Help is on the way"},
                headers=agent_headers,
            )
            assert res.status_code == 200

            update = ws.receive_json()
            assert update["has_unread"] is True
            responses = update["messages"][0]["responses"]
            assert [r["response_text"] for r in responses] == ["Help is on the way"]

    def test_listeners_removed_on_disconnect(self, client, login_as):
        _, headers = login_as("user")
        token = headers["Authorization"].split()[1]
        before = default_feed.subscriber_count("messages")

        with client.websocket_connect(f"/api/helpline/ws/history?token={token}") as ws:
            ws.receive_json()
            ws.receive_json()
            assert default_feed.subscriber_count("messages") == before + 1

        assert default_feed.subscriber_count("messages") == before

    def test_rejects_bad_token(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/helpline/ws/history?token=garbage") as ws:
                ws.receive_json()
        assert exc_info.value.code == 1008

    def test_rejects_agent(self, client, login_as):
        _, headers = login_as("agent")
        token = headers["Authorization"].split()[1]
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/api/helpline/ws/history?token={token}") as ws:
                ws.receive_json()
        assert exc_info.value.code == 1008


class TestAgentSocket:
    def test_pushes_new_messages(self, client, login_as, submit):
        _, user_headers = login_as("user")
        _, agent_headers = login_as("agent")
        token = agent_headers["Authorization"].split()[1]

        with client.websocket_connect(f"/api/helpline/ws/agent/messages?token={token}") as ws:
            initial = ws.receive_json()
            assert initial == {"type": "messages", "messages": []}

            message = submit(user_headers)["message"]

            update = ws.receive_json()
            assert update["type"] == "messages"
            assert [m["id"] for m in update["messages"]] == [message["id"]]


class TestServeLoop:
    def test_failed_send_is_collected_on_disconnect(self, caplog):
        unsubscribed = []
        loop_errors = []

        class ClosingSocket:
            def __init__(self):
                self.send_attempted = asyncio.Event()

            async def accept(self):
                pass

            async def send_json(self, payload):
                self.send_attempted.set()
                raise RuntimeError("Cannot call send once a close message has been sent")

            async def receive_text(self):
                await self.send_attempted.wait()
                raise WebSocketDisconnect(1001)

        def subscribe(push):
            push({"type": "history", "messages": [], "has_unread": False})
            return lambda: unsubscribed.append(True)

        async def run():
            asyncio.get_running_loop().set_exception_handler(
                lambda loop, context: loop_errors.append(context),
            )
            await _serve(ClosingSocket(), subscribe)

        with caplog.at_level(logging.INFO, logger="services.api.src.helpline.routes.realtime"):
            asyncio.run(run())

        assert unsubscribed == [True]
        assert loop_errors == []
        assert "ws_send_failed" in caplog.messages
