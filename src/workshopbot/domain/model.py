"""Domain types for workshop provisioning (pure, dependency-light)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum


class WorkshopRole(StrEnum):
    OWNER = "owner"
    CREW = "crew"
    NONE = "none"


class RoomKind(StrEnum):
    SPACE = "space"
    GENERAL = "general"


@dataclass(frozen=True, slots=True)
class GroupMembership:
    """Raw directory group record as returned by the directory."""

    name: str
    path: str | None = None
    attributes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def attribute(self, key: str) -> str | None:
        """Return the first non-blank value of ``key``."""

        for value in self.attributes.get(key, ()):
            stripped = value.strip()
            if stripped:
                return stripped
        return None


@dataclass(frozen=True, slots=True)
class WorkshopGroup:
    slug: str
    display_name: str
    role: WorkshopRole


@dataclass(frozen=True, slots=True)
class RoomIdentity:
    """Deterministic naming of a workshop room plus its resolved room id.

    ``room_id`` is ``None`` when the room did not exist at lookup time.
    """

    kind: RoomKind
    slug: str
    local_alias: str
    full_alias: str
    room_id: str | None = None

    @property
    def exists(self) -> bool:
        return self.room_id is not None

    def with_room_id(self, room_id: str) -> RoomIdentity:
        return replace(self, room_id=room_id)

    def require_room_id(self) -> str:
        if self.room_id is None:
            raise ValueError(f"Room {self.full_alias} has not been resolved")
        return self.room_id


@dataclass(frozen=True, slots=True)
class Found:
    room_id: str


@dataclass(frozen=True, slots=True)
class NotFound:
    alias: str


@dataclass(frozen=True, slots=True)
class LookupFailed:
    alias: str
    reason: str


AliasLookup = Found | NotFound | LookupFailed


@dataclass(frozen=True, slots=True)
class OutgoingMessage:
    """A rendered chat message: plain body plus optional HTML body."""

    body: str
    formatted_body: str | None = None


__all__ = [
    "AliasLookup",
    "Found",
    "GroupMembership",
    "LookupFailed",
    "NotFound",
    "OutgoingMessage",
    "RoomIdentity",
    "RoomKind",
    "WorkshopGroup",
    "WorkshopRole",
]
