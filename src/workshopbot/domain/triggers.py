"""Pure relevance checks applied to incoming events."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol

JOIN = "join"


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def event_time(server_timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(server_timestamp_ms / 1000, tz=UTC)


def is_stale(
    server_timestamp_ms: int,
    *,
    max_age: timedelta,
    clock: Clock = _utcnow,
) -> bool:
    """Return whether an event is older than ``max_age``.

    Events replayed from history on startup carry their original timestamp
    and are filtered out here.
    """

    return clock() - event_time(server_timestamp_ms) > max_age


def is_join_transition(membership: str, prev_membership: str | None) -> bool:
    """Return whether a membership change is a fresh join (not a profile update)."""

    return membership == JOIN and prev_membership != JOIN


def parse_command_argument(body: str, prefix: str) -> str | None:
    """Return the second whitespace-separated token of a prefixed command.

    ``"!create pottery"`` with prefix ``"!create"`` yields ``"pottery"``.
    """

    if not body.startswith(prefix):
        return None
    tokens = body.split()
    if len(tokens) < 2 or tokens[0] != prefix.strip():  # noqa: PLR2004
        return None
    return tokens[1]


def looks_like_direct_chat(joined_members: int) -> bool:
    """Approximate DM detection: exactly the bot and one other user."""

    return joined_members == 2  # noqa: PLR2004


__all__ = [
    "Clock",
    "event_time",
    "is_join_transition",
    "is_stale",
    "looks_like_direct_chat",
    "parse_command_argument",
]
