from __future__ import annotations

from datetime import UTC, datetime, timedelta

from workshopbot.domain.triggers import (
    is_join_transition,
    is_stale,
    looks_like_direct_chat,
    parse_command_argument,
)

NOW = datetime(2025, 3, 1, 12, tzinfo=UTC)


def _clock() -> datetime:
    return NOW


def _ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def test_events_older_than_threshold_are_stale() -> None:
    old = _ms(NOW - timedelta(minutes=10))

    assert is_stale(old, max_age=timedelta(minutes=5), clock=_clock)


def test_recent_events_are_not_stale() -> None:
    recent = _ms(NOW - timedelta(seconds=30))

    assert not is_stale(recent, max_age=timedelta(minutes=5), clock=_clock)


def test_join_transition_ignores_profile_changes() -> None:
    assert is_join_transition("join", None)
    assert is_join_transition("join", "invite")
    assert is_join_transition("join", "leave")
    assert not is_join_transition("join", "join")
    assert not is_join_transition("leave", "join")


def test_parse_command_argument_takes_second_token() -> None:
    assert parse_command_argument("!create pottery", "!create") == "pottery"
    assert parse_command_argument("!create   pottery  extra", "!create") == "pottery"


def test_parse_command_argument_rejects_malformed_commands() -> None:
    assert parse_command_argument("!create", "!create") is None
    assert parse_command_argument("!createpottery", "!create") is None
    assert parse_command_argument("hello !create pottery", "!create") is None


def test_direct_chat_heuristic() -> None:
    assert looks_like_direct_chat(2)
    assert not looks_like_direct_chat(1)
    assert not looks_like_direct_chat(3)
