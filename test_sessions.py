"""Tests for the browse session registry."""
from backend.sessions import SessionRegistry
from conftest import Clock


def registry(clock, ttl=60, limit=3):
    return SessionRegistry(ttl_seconds=ttl, max_sessions=limit, clock=clock)


def test_add_and_get():
    sessions = registry(Clock(0))
    marker = object()
    session_id = sessions.add(marker)
    assert sessions.get(session_id) is marker
    assert len(sessions) == 1
    assert sessions.get("unknown") is None


def test_idle_session_expires_on_lookup():
    clock = Clock(0)
    sessions = registry(clock)
    session_id = sessions.add(object())

    clock.advance(60)
    assert sessions.get(session_id) is not None
    clock.advance(61)
    assert sessions.get(session_id) is None
    assert session_id not in sessions


def test_lookup_keeps_a_session_alive():
    clock = Clock(0)
    sessions = registry(clock)
    session_id = sessions.add(object())
    for _ in range(5):
        clock.advance(50)
        assert sessions.get(session_id) is not None


def test_sweep_drops_only_idle_sessions():
    clock = Clock(0)
    sessions = registry(clock, limit=10)
    old = sessions.add(object())
    clock.advance(40)
    fresh = sessions.add(object())
    clock.advance(30)

    assert sessions.sweep() == 1
    assert sessions.sweep() == 0
    assert old not in sessions
    assert fresh in sessions


def test_cap_evicts_least_recently_used():
    clock = Clock(0)
    sessions = registry(clock, limit=2)
    first = sessions.add(object())
    second = sessions.add(object())
    sessions.get(first)
    third = sessions.add(object())

    assert len(sessions) == 2
    assert second not in sessions
    assert first in sessions and third in sessions


def test_add_sweeps_idle_sessions():
    clock = Clock(0)
    sessions = registry(clock)
    first = sessions.add(object())
    second = sessions.add(object())
    clock.advance(61)
    newest = sessions.add(object())

    assert len(sessions) == 1
    assert first not in sessions and second not in sessions
    assert newest in sessions


def test_remove():
    sessions = registry(Clock(0))
    session_id = sessions.add(object())
    assert sessions.remove(session_id) is True
    assert sessions.remove(session_id) is False
