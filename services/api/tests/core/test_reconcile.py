"""Tests for message/response reconciliation and derived read state."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from services.api.src.helpline.core.reconcile import (
    HistorySync,
    attach_responses,
    awaiting_response_count,
    build_notifications,
    build_view,
    describe_status,
    format_duration,
    has_unread,
    summarize,
    unread_count,
)

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _msg(msg_id, status="processed", minutes=0, last_response_minutes=None):
    return {
        "id": msg_id,
        "user_id": "u1",
        "status": status,
        "sent_at": T0 + timedelta(minutes=minutes),
        "last_response_at": (
            T0 + timedelta(minutes=last_response_minutes)
            if last_response_minutes is not None else None
        ),
    }


def _resp(resp_id, message_id, minutes, is_read=False):
    return {
        "id": resp_id,
        "message_id": message_id,
        "agent_id": "a1",
        "user_id": "u1",
        "response_text": f"reply {resp_id}",
        "sent_at": T0 + timedelta(minutes=minutes),
        "is_read": is_read,
    }


class TestAttachResponses:
    def test_response_appears_only_under_matching_message(self):
        messages = [_msg("m1"), _msg("m2")]
        responses = [_resp("r1", "m1", 5), _resp("r2", "m2", 6), _resp("r3", "m1", 7)]

        joined = attach_responses(messages, responses)

        assert [r.id for r in joined[0].responses] == ["r1", "r3"]
        assert [r.id for r in joined[1].responses] == ["r2"]
        for message in joined:
            assert all(r.message_id == message.id for r in message.responses)

    def test_orphan_responses_are_dropped(self):
        joined = attach_responses([_msg("m1")], [_resp("r1", "gone", 1)])
        assert joined[0].responses == []

    def test_responses_sorted_ascending_by_send_time(self):
        responses = [_resp("late", "m1", 30), _resp("early", "m1", 1), _resp("mid", "m1", 10)]
        joined = attach_responses([_msg("m1")], responses)
        assert [r.id for r in joined[0].responses] == ["early", "mid", "late"]

    def test_result_independent_of_response_order(self):
        responses = [_resp("r1", "m1", 1), _resp("r2", "m1", 2), _resp("r3", "m2", 3)]
        forward = attach_responses([_msg("m1"), _msg("m2")], responses)
        backward = attach_responses([_msg("m1"), _msg("m2")], list(reversed(responses)))
        assert forward == backward

    def test_idempotent(self):
        first = attach_responses([_msg("m1")], [_resp("r1", "m1", 1)])
        second = attach_responses(first, [r for m in first for r in m.responses])
        assert first == second

    def test_message_order_preserved(self):
        joined = attach_responses([_msg("m2", minutes=5), _msg("m1")], [])
        assert [m.id for m in joined] == ["m2", "m1"]


class TestUnreadState:
    def test_has_unread_when_any_response_unread(self):
        joined = attach_responses(
            [_msg("m1"), _msg("m2")],
            [_resp("r1", "m1", 1, is_read=True), _resp("r2", "m2", 2, is_read=False)],
        )
        assert has_unread(joined) is True
        assert unread_count(joined) == 1
        assert joined[1].has_unread is True
        assert joined[0].has_unread is False

    def test_no_unread_when_all_read(self):
        joined = attach_responses([_msg("m1")], [_resp("r1", "m1", 1, is_read=True)])
        assert has_unread(joined) is False

    def test_no_unread_without_responses(self):
        assert has_unread(attach_responses([_msg("m1")], [])) is False

    def test_orphan_unread_response_does_not_count(self):
        joined = attach_responses([_msg("m1")], [_resp("r1", "other", 1)])
        assert has_unread(joined) is False

    def test_build_view_sets_flag(self):
        view = build_view([_msg("m1")], [_resp("r1", "m1", 1)])
        assert view.has_unread is True
        assert len(view.messages) == 1


class TestNotifications:
    def test_counts_unread_and_awaiting(self):
        history = attach_responses(
            [_msg("m1", status="responded"), _msg("m2", status="processed"), _msg("m3", status="sent")],
            [_resp("r1", "m1", 1), _resp("r2", "m1", 2), _resp("r3", "m1", 3, is_read=True)],
        )
        notes = build_notifications(history)

        assert notes.unread_responses_count == 2
        assert [s.message_id for s in notes.messages_with_unread] == ["m1"]
        assert notes.messages_with_unread[0].unread_count == 2
        assert notes.awaiting_response_count == 1
        assert awaiting_response_count(history) == 1


class TestSummarize:
    def test_empty_history(self):
        stats = summarize([])
        assert stats.total_messages == 0
        assert stats.response_rate == 0
        assert stats.avg_response_time == "N/A"

    def test_counts_and_rate(self):
        history = attach_responses(
            [
                _msg("m1", status="responded", last_response_minutes=30),
                _msg("m2", status="processed"),
                _msg("m3", status="pending"),
                _msg("m4", status="sent"),
            ],
            [_resp("r1", "m1", 30), _resp("r2", "m1", 31)],
        )
        stats = summarize(history)

        assert stats.total_messages == 4
        assert stats.responded_messages == 1
        assert stats.processing_messages == 1
        assert stats.pending_messages == 2
        assert stats.total_responses == 2
        assert stats.response_rate == 25
        assert stats.avg_response_minutes == 30
        assert stats.avg_response_time == "30 min"

    def test_average_over_hours(self):
        history = attach_responses(
            [
                _msg("m1", status="responded", last_response_minutes=90),
                _msg("m2", status="responded", minutes=0, last_response_minutes=150),
            ],
            [_resp("r1", "m1", 90), _resp("r2", "m2", 150)],
        )
        assert summarize(history).avg_response_time == "2h 0m"

    @pytest.mark.parametrize("minutes,expected", [(0, "0 min"), (59, "59 min"), (61, "1h 1m")])
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected


class TestDescribeStatus:
    def test_responded_with_count(self):
        assert describe_status("responded", 2).endswith("and has 2 responses")
        assert describe_status("responded", 1).endswith("and has 1 response")

    def test_error(self):
        assert "error" in describe_status("error")

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            describe_status("resolved")


class TestHistorySync:
    def test_recomputes_on_either_stream(self):
        views = []
        sync = HistorySync(views.append)

        sync.on_responses([_resp("r1", "m1", 1)])
        assert views[-1].messages == []
        assert views[-1].has_unread is False

        sync.on_messages([_msg("m1")])
        assert views[-1].has_unread is True
        assert [r.id for r in views[-1].messages[0].responses] == ["r1"]

        sync.on_responses([_resp("r1", "m1", 1, is_read=True)])
        assert views[-1].has_unread is False

    def test_arrival_order_does_not_matter(self):
        a, b = [], []
        messages = [_msg("m1"), _msg("m2")]
        responses = [_resp("r2", "m2", 2), _resp("r1", "m1", 1)]

        first = HistorySync(a.append)
        first.on_messages(messages)
        first.on_responses(responses)

        second = HistorySync(b.append)
        second.on_responses(responses)
        second.on_messages(messages)

        assert a[-1] == b[-1]

    def test_concurrent_updates_emit_latest_view_last(self):
        views = []
        entered = threading.Event()
        release = threading.Event()

        def slow_first_emit(view):
            if not entered.is_set():
                entered.set()
                release.wait(timeout=5)
            views.append(view)

        sync = HistorySync(slow_first_emit)
        messages_thread = threading.Thread(target=sync.on_messages, args=([_msg("m1")],))
        messages_thread.start()
        assert entered.wait(timeout=5)

        responses_thread = threading.Thread(
            target=sync.on_responses, args=([_resp("r1", "m1", 1)],),
        )
        responses_thread.start()
        responses_thread.join(timeout=0.2)
        release.set()
        messages_thread.join(timeout=5)
        responses_thread.join(timeout=5)

        assert [v.has_unread for v in views] == [False, True]
        assert views[-1] == sync.view
