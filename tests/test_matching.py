"""Tests for the matching queue, pairing and partnership teardown."""

from __future__ import annotations

import pytest

from event_names import TEXT_EVENTS, VIDEO_EVENTS
from matching import MatchingQueue, PairingEngine, Session, SessionStore
from outbound import JoinGroup, LeaveGroup, SendTo
from participants import Mode, ParticipantRegistry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry():
    return ParticipantRegistry()


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def engine(registry, sessions):
    return PairingEngine(Mode.ONE_TO_ONE, TEXT_EVENTS, sessions, registry)


@pytest.fixture
def video_engine(registry, sessions):
    return PairingEngine(Mode.VIDEO, VIDEO_EVENTS, sessions, registry)


# ---------------------------------------------------------------------------
# MatchingQueue
# ---------------------------------------------------------------------------


class TestMatchingQueue:
    def test_fifo_order(self, registry):
        queue = MatchingQueue()
        p1, p2, p3 = (registry.create(c, c) for c in ("p1", "p2", "p3"))
        for p in (p1, p2, p3):
            queue.push(p)

        assert queue.pop_oldest() is p1
        assert queue.pop_oldest() is p2
        assert queue.pop_oldest() is p3
        assert queue.pop_oldest() is None

    def test_push_never_duplicates(self, registry):
        queue = MatchingQueue()
        p = registry.create("p", "p")
        assert queue.push(p) is True
        assert queue.push(p) is False
        assert len(queue) == 1

    def test_remove(self, registry):
        queue = MatchingQueue()
        p = registry.create("p", "p")
        queue.push(p)
        assert queue.remove(p) is True
        assert queue.remove(p) is False
        assert p not in queue


# ---------------------------------------------------------------------------
# match
# ---------------------------------------------------------------------------


class TestMatch:
    def test_empty_queue_does_not_match(self, engine, registry, sessions):
        a = registry.create("a", "alice")
        matched, actions = engine.match(a)

        assert matched is False
        assert actions == []
        assert a.partner is None
        assert len(sessions) == 0

    def test_match_pairs_symmetrically(self, engine, registry, sessions):
        a = registry.create("a", "alice")
        b = registry.create("b", "bob")
        engine.enqueue(a)

        matched, actions = engine.match(b)

        assert matched is True
        assert b.partner is a and a.partner is b
        assert a.session_id == b.session_id == "room_b_a"
        session = sessions.get("room_b_a")
        assert session == Session("room_b_a", b, a)
        assert len(engine.queue) == 0
        assert actions == [
            JoinGroup("b", "room_b_a"),
            JoinGroup("a", "room_b_a"),
            SendTo("b", "partnerFound", {"id": "a", "name": "alice"}),
            SendTo("a", "partnerFound", {"id": "b", "name": "bob"}),
        ]

    def test_oldest_waiting_is_matched_first(self, engine, registry):
        p1, p2, p3 = (registry.create(c, c) for c in ("p1", "p2", "p3"))
        for p in (p1, p2, p3):
            engine.enqueue(p)

        newcomer = registry.create("new", "new")
        engine.match(newcomer)

        assert newcomer.partner is p1
        assert list(engine.queue) == [p2, p3]

    def test_never_matches_with_self(self, engine, registry):
        a = registry.create("a", "alice")
        engine.enqueue(a)

        matched, _ = engine.match(a)

        assert matched is False
        assert a.partner is None
        # Stale entry removed; the caller re-enqueues
        assert a not in engine.queue

    def test_match_or_enqueue_emits_waiting(self, engine, registry):
        a = registry.create("a", "alice")
        actions = engine.match_or_enqueue(a)

        assert actions == [SendTo("a", "waiting")]
        assert list(engine.queue) == [a]

    def test_video_mode_uses_video_events(self, video_engine, registry):
        a = registry.create("a", "alice", Mode.VIDEO)
        b = registry.create("b", "bob", Mode.VIDEO)
        assert video_engine.match_or_enqueue(a) == [SendTo("a", "videoWaiting")]

        actions = video_engine.match_or_enqueue(b)

        assert a.session_id == "video_room_b_a"
        assert SendTo("a", "videoPartnerFound", {"id": "b", "name": "bob"}) in actions


# ---------------------------------------------------------------------------
# break_partnership
# ---------------------------------------------------------------------------


class TestBreakPartnership:
    def _pair(self, engine, registry):
        a = registry.create("a", "alice")
        b = registry.create("b", "bob")
        engine.enqueue(a)
        engine.match(b)
        return a, b

    def test_teardown_clears_both_sides_and_store(self, engine, registry, sessions):
        a, b = self._pair(engine, registry)
        session_id = a.session_id

        actions = engine.break_partnership(a)

        assert a.partner is None and a.session_id is None
        assert b.partner is None and b.session_id is None
        assert session_id not in sessions
        assert actions == [
            SendTo("b", "partnerLeft"),
            LeaveGroup("a", session_id),
            LeaveGroup("b", session_id),
        ]

    def test_teardown_from_either_side(self, engine, registry, sessions):
        a, b = self._pair(engine, registry)
        actions = engine.break_partnership(b)

        assert SendTo("a", "partnerLeft") in actions
        assert a.partner is None and b.partner is None
        assert len(sessions) == 0

    def test_unmatched_is_noop(self, engine, registry):
        a = registry.create("a", "alice")
        assert engine.break_partnership(a) == []

    def test_second_teardown_is_noop(self, engine, registry):
        a, b = self._pair(engine, registry)
        engine.break_partnership(a)
        assert engine.break_partnership(a) == []
        assert engine.break_partnership(b) == []

    def test_partner_no_longer_registered_is_not_notified(self, engine, registry, sessions):
        a, b = self._pair(engine, registry)
        registry.remove("b")

        actions = engine.break_partnership(a)

        assert not any(isinstance(x, SendTo) for x in actions)
        assert a.partner is None and b.partner is None
        assert len(sessions) == 0
