"""matrix-nio backed implementation of the chat gateway."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, TypeVar

import aiohttp
import nio

from workshopbot.domain.errors import (
    InviteError,
    MessageSendError,
    RemoteOperationError,
    RoomCreationError,
    RoomStateError,
)
from workshopbot.domain.model import Found, LookupFailed, NotFound

from .account_data import AccountDataError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping, Sequence

    from workshopbot.domain.model import AliasLookup, OutgoingMessage

    from workshopbot.domain.ports import ChatGateway

    from .account_data import MatrixAccountDataClient

log = getLogger(__name__)

T = TypeVar("T")

NOT_FOUND = "M_NOT_FOUND"
HTML_FORMAT = "org.matrix.custom.html"

_TRANSPORT_ERRORS = (aiohttp.ClientError, TimeoutError)


def _describe(response: nio.ErrorResponse) -> str:
    return f"{response.status_code}: {response.message}"


async def _call(
    request: Awaitable[T | nio.ErrorResponse],
    error: type[RemoteOperationError],
    action: str,
) -> T:
    """Await a nio request and turn error responses and transport failures into ``error``."""

    try:
        response = await request
    except _TRANSPORT_ERRORS as exc:
        raise error(f"{action} failed: {exc!r}") from exc
    if isinstance(response, nio.ErrorResponse):
        raise error(f"{action} failed: {_describe(response)}")
    return response


class NioChatGateway:
    """Thin wrapper around ``nio.AsyncClient`` exposing the calls the bot needs."""

    def __init__(self, client: nio.AsyncClient, *, account_data: MatrixAccountDataClient) -> None:
        self._client = client
        self._account_data = account_data

    @property
    def user_id(self) -> str:
        return self._client.user_id

    @property
    def access_token(self) -> str | None:
        return self._client.access_token or None

    async def resolve_alias(self, alias: str) -> AliasLookup:
        try:
            response = await self._client.room_resolve_alias(alias)
        except _TRANSPORT_ERRORS as exc:
            return LookupFailed(alias=alias, reason=repr(exc))
        if isinstance(response, nio.RoomResolveAliasResponse):
            return Found(room_id=response.room_id)
        if response.status_code == NOT_FOUND:
            return NotFound(alias=alias)
        return LookupFailed(alias=alias, reason=_describe(response))

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
    ) -> str:
        if is_direct:
            preset = nio.RoomPreset.trusted_private_chat
        elif public:
            preset = nio.RoomPreset.public_chat
        else:
            preset = nio.RoomPreset.private_chat

        response = await _call(
            self._client.room_create(
                visibility=nio.RoomVisibility.public if public else nio.RoomVisibility.private,
                alias=alias,
                name=name,
                topic=topic,
                room_version=room_version,
                is_direct=is_direct,
                preset=preset,
                invite=list(invite),
                initial_state=[dict(event) for event in initial_state],
                space=space,
            ),
            RoomCreationError,
            f"Creating room {alias or name or 'direct chat'}",
        )
        log.info("Created room %s (alias=%s, space=%s)", response.room_id, alias, space)
        return response.room_id

    async def direct_room_for(self, user_id: str) -> str | None:
        """Return the newest recorded direct room with ``user_id`` that both sides still share."""

        recorded = (await self._account_data.direct_rooms()).get(user_id, [])
        for room_id in reversed(recorded):
            room = self._client.rooms.get(room_id)
            if room is None:
                continue
            if user_id in room.users or user_id in room.invited_users:
                return room_id
        return None

    async def create_direct_room(self, user_id: str) -> str:
        room_id = await self.create_room(is_direct=True, invite=(user_id,))
        try:
            await self._account_data.add_direct_room(user_id, room_id)
        except AccountDataError:
            log.warning(
                "Could not record %s as direct room with %s", room_id, user_id, exc_info=True
            )
        return room_id

    async def invite(self, room_id: str, user_id: str) -> None:
        await _call(
            self._client.room_invite(room_id, user_id),
            InviteError,
            f"Inviting {user_id} to {room_id}",
        )
        log.info("Invited %s to %s", user_id, room_id)

    async def send_message(self, room_id: str, message: OutgoingMessage) -> None:
        content: dict[str, Any] = {"msgtype": "m.text", "body": message.body}
        if message.formatted_body is not None:
            content["format"] = HTML_FORMAT
            content["formatted_body"] = message.formatted_body
        await _call(
            self._client.room_send(
                room_id,
                "m.room.message",
                content,
                ignore_unverified_devices=True,
            ),
            MessageSendError,
            f"Sending message to {room_id}",
        )

    async def get_state(
        self, room_id: str, event_type: str, state_key: str = ""
    ) -> dict[str, object]:
        response = await _call(
            self._client.room_get_state_event(room_id, event_type, state_key),
            RoomStateError,
            f"Reading {event_type} in {room_id}",
        )
        return dict(response.content)

    async def put_state(
        self,
        room_id: str,
        event_type: str,
        content: Mapping[str, object],
        state_key: str = "",
    ) -> None:
        await _call(
            self._client.room_put_state(room_id, event_type, dict(content), state_key),
            RoomStateError,
            f"Writing {event_type} in {room_id}",
        )

    async def joined_member_count(self, room_id: str) -> int:
        response = await _call(
            self._client.joined_members(room_id),
            RemoteOperationError,
            f"Listing members of {room_id}",
        )
        return len(response.members)

    async def join(self, room_id: str) -> None:
        await _call(self._client.join(room_id), RemoteOperationError, f"Joining {room_id}")
        log.info("Joined %s", room_id)


if TYPE_CHECKING:
    _gateway_check: type[ChatGateway] = NioChatGateway
