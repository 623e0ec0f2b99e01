"""Ports for the external systems the reconciliation workflow talks to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .model import AliasLookup, GroupMembership, OutgoingMessage


@runtime_checkable
class DirectoryLookup(Protocol):
    """Resolve chat users to directory identities and their groups."""

    async def resolve_identity(self, user_id: str) -> str | None:
        """Return the directory id linked to ``user_id`` or ``None`` if unknown."""
        ...

    async def list_groups(self, directory_id: str) -> Sequence[GroupMembership]: ...


@runtime_checkable
class ChatGateway(Protocol):
    """Operations the workflow needs from the homeserver."""

    @property
    def user_id(self) -> str: ...

    async def resolve_alias(self, alias: str) -> AliasLookup: ...

    async def create_room(
        self,
        *,
        name: str | None = None,
        alias: str | None = None,
        topic: str | None = None,
        public: bool = False,
        space: bool = False,
        is_direct: bool = False,
        invite: Sequence[str] = (),
        initial_state: Sequence[Mapping[str, object]] = (),
        room_version: str | None = None,
    ) -> str: ...

    async def direct_room_for(self, user_id: str) -> str | None:
        """Return an existing direct room shared with ``user_id``, if any."""
        ...

    async def create_direct_room(self, user_id: str) -> str:
        """Create a direct room with ``user_id`` and remember it as such."""
        ...

    async def invite(self, room_id: str, user_id: str) -> None: ...

    async def send_message(self, room_id: str, message: OutgoingMessage) -> None: ...

    async def get_state(
        self, room_id: str, event_type: str, state_key: str = ""
    ) -> dict[str, object]: ...

    async def put_state(
        self,
        room_id: str,
        event_type: str,
        content: Mapping[str, object],
        state_key: str = "",
    ) -> None: ...

    async def joined_member_count(self, room_id: str) -> int: ...


__all__ = ["ChatGateway", "DirectoryLookup"]
