"""Get-or-create handling for workshop spaces and their general rooms."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import RoomLookupError
from .locks import KeyedLocks
from .model import Found, LookupFailed, NotFound

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .model import RoomIdentity
    from .naming import RoomNamingPolicy
    from .ports import ChatGateway

log = getLogger(__name__)

SPACE_CHILD = "m.space.child"
SPACE_PARENT = "m.space.parent"
POWER_LEVELS = "m.room.power_levels"
JOIN_RULES = "m.room.join_rules"
DEFAULT_ADMIN_POWER_LEVEL = 100


def merge_power_levels(
    content: Mapping[str, object],
    user_ids: Iterable[str],
    level: int,
) -> dict[str, object]:
    """Return ``content`` with ``user_ids`` raised to at least ``level``.

    Every other key and every other user's level is carried over unchanged.
    """

    merged = dict(content)
    raw_users = content.get("users")
    users: dict[str, object] = dict(raw_users) if isinstance(raw_users, dict) else {}
    for user_id in user_ids:
        current = users.get(user_id)
        if isinstance(current, int) and current >= level:
            continue
        users[user_id] = level
    merged["users"] = users
    return merged


@dataclass(slots=True)
class SpaceRoomResolver:
    """Look up workshop rooms by alias and create them when absent.

    Resolve-or-create calls are serialised per (kind, slug) inside this
    process; separate processes can still race on the same alias, in which
    case the homeserver rejects the second creation.
    """

    chat: ChatGateway
    naming: RoomNamingPolicy
    general_room_public: bool = False
    room_version: str | None = None
    _locks: KeyedLocks = field(default_factory=KeyedLocks, init=False)

    async def lookup(self, identity: RoomIdentity) -> RoomIdentity:
        """Return ``identity`` with its room id, or unchanged if the alias is unknown."""

        outcome = await self.chat.resolve_alias(identity.full_alias)
        match outcome:
            case Found(room_id=room_id):
                return identity.with_room_id(room_id)
            case NotFound():
                return identity
            case LookupFailed(alias=alias, reason=reason):
                raise RoomLookupError(alias, reason)

    async def lookup_space(self, slug: str) -> RoomIdentity:
        return await self.lookup(self.naming.space(slug))

    async def resolve_or_create_space(
        self, slug: str, display_name: str
    ) -> tuple[RoomIdentity, bool]:
        """Return the workshop space and whether it existed before this call."""

        identity = self.naming.space(slug)
        async with self._locks.hold((identity.kind, identity.slug)):
            resolved = await self.lookup(identity)
            if resolved.exists:
                return resolved, True
            log.info("Creating space %s for workshop %s", identity.full_alias, slug)
            room_id = await self.chat.create_room(
                name=display_name,
                alias=identity.local_alias,
                space=True,
                room_version=self.room_version,
            )
            return identity.with_room_id(room_id), False

    async def resolve_or_create_general_room(
        self,
        slug: str,
        display_name: str,
        space: RoomIdentity,
    ) -> tuple[RoomIdentity, bool]:
        """Return the general room of a workshop and whether it existed before."""

        identity = self.naming.general(slug)
        async with self._locks.hold((identity.kind, identity.slug)):
            resolved = await self.lookup(identity)
            if resolved.exists:
                return resolved, True
            log.info("Creating general room %s for workshop %s", identity.full_alias, slug)
            room_id = await self.chat.create_room(
                name=f"{display_name} (general)",
                alias=identity.local_alias,
                public=self.general_room_public,
                initial_state=self._general_room_state(space),
                room_version=self.room_version,
            )
            return identity.with_room_id(room_id), False

    async def nest_room_under_space(self, space_id: str, room_id: str) -> None:
        via = {"via": [self.naming.server_name]}
        await self.chat.put_state(space_id, SPACE_CHILD, via, state_key=room_id)
        await self.chat.put_state(
            room_id, SPACE_PARENT, {**via, "canonical": True}, state_key=space_id
        )

    async def grant_power(
        self,
        room_id: str,
        user_ids: Iterable[str],
        level: int = DEFAULT_ADMIN_POWER_LEVEL,
    ) -> None:
        current = await self.chat.get_state(room_id, POWER_LEVELS)
        merged = merge_power_levels(current, user_ids, level)
        if merged == current:
            return
        await self.chat.put_state(room_id, POWER_LEVELS, merged)

    def _general_room_state(self, space: RoomIdentity) -> list[dict[str, object]]:
        if space.room_id is None:
            return []
        return [
            {
                "type": JOIN_RULES,
                "state_key": "",
                "content": {
                    "join_rule": "restricted",
                    "allow": [{"type": "m.room_membership", "room_id": space.room_id}],
                },
            },
            {
                "type": SPACE_PARENT,
                "state_key": space.room_id,
                "content": {"via": [self.naming.server_name], "canonical": True},
            },
        ]


__all__ = ["DEFAULT_ADMIN_POWER_LEVEL", "SpaceRoomResolver", "merge_power_levels"]
