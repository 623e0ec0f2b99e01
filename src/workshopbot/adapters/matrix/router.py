"""Route matrix-nio events to the reconciliation workflows.

Every handler runs inside a guard: a failing event is logged and dropped so
the sync loop keeps serving later events.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any

import nio

from workshopbot.domain.triggers import (
    is_join_transition,
    is_stale,
    looks_like_direct_chat,
)

if TYPE_CHECKING:
    from workshopbot.domain.reconciliation import ReconciliationEngine
    from workshopbot.domain.triggers import Clock

    from .gateway import NioChatGateway

log = getLogger(__name__)

TEXT_MESSAGE = "m.text"
INVITE = "invite"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class EventRouter:
    engine: ReconciliationEngine
    chat: NioChatGateway
    monitored_room_id: str
    command_prefix: str
    stale_after: timedelta
    clock: Clock = field(default=_utcnow)

    def register(self, client: nio.AsyncClient) -> None:
        client.add_event_callback(self.on_member_event, nio.RoomMemberEvent)
        client.add_event_callback(self.on_text_message, nio.RoomMessageText)
        client.add_event_callback(self.on_invite, nio.InviteMemberEvent)

    async def on_member_event(self, room: nio.MatrixRoom, event: nio.RoomMemberEvent) -> None:
        await self._guard(
            "membership",
            lambda: self.handle_membership(
                room_id=room.room_id,
                user_id=event.state_key,
                membership=event.membership,
                prev_membership=event.prev_membership,
                server_timestamp=event.server_timestamp,
            ),
        )

    async def on_text_message(self, room: nio.MatrixRoom, event: nio.RoomMessageText) -> None:
        content: dict[str, Any] = event.source.get("content", {})
        await self._guard(
            "message",
            lambda: self.handle_message(
                room_id=room.room_id,
                sender=event.sender,
                msgtype=str(content.get("msgtype", TEXT_MESSAGE)),
                body=event.body,
                server_timestamp=event.server_timestamp,
            ),
        )

    async def on_invite(self, room: nio.MatrixRoom, event: nio.InviteMemberEvent) -> None:
        await self._guard(
            "invite",
            lambda: self.handle_invite(
                room_id=room.room_id,
                user_id=event.state_key,
                membership=event.membership,
            ),
        )

    async def handle_membership(
        self,
        *,
        room_id: str,
        user_id: str,
        membership: str,
        prev_membership: str | None,
        server_timestamp: int,
    ) -> bool:
        """Start join reconciliation for a relevant membership change."""

        if room_id != self.monitored_room_id:
            return False
        if not is_join_transition(membership, prev_membership):
            return False
        if user_id == self.chat.user_id:
            return False
        if is_stale(server_timestamp, max_age=self.stale_after, clock=self.clock):
            log.debug("Ignoring stale join of %s", user_id)
            return False

        log.info("User %s joined the monitored room", user_id)
        result = await self.engine.reconcile_join(user_id)
        log.info(
            "Join of %s handled: workshops=%s, welcomed=%s, invited=%s, failed=%s",
            user_id,
            list(result.workshops),
            result.welcomed,
            result.invited_to,
            result.failed,
        )
        return True

    async def handle_message(
        self,
        *,
        room_id: str,
        sender: str,
        msgtype: str,
        body: str,
        server_timestamp: int,
    ) -> bool:
        """Run the create command when it arrives in a direct chat with the bot."""

        if sender == self.chat.user_id or msgtype != TEXT_MESSAGE:
            return False
        if not body.startswith(self.command_prefix):
            return False
        if room_id == self.monitored_room_id:
            return False
        if is_stale(server_timestamp, max_age=self.stale_after, clock=self.clock):
            log.debug("Ignoring stale command from %s", sender)
            return False
        # Two joined members is taken to mean a direct chat; there is no
        # reliable protocol flag for this on the receiving side.
        if not looks_like_direct_chat(await self.chat.joined_member_count(room_id)):
            log.debug("Ignoring command from %s outside a direct chat", sender)
            return False

        await self.engine.handle_create_command(sender, room_id, body)
        return True

    async def handle_invite(self, *, room_id: str, user_id: str, membership: str) -> bool:
        """Join the monitored room when invited to it; ignore other invites."""

        if membership != INVITE or user_id != self.chat.user_id:
            return False
        if room_id != self.monitored_room_id:
            log.info("Ignoring invite to %s", room_id)
            return False
        await self.chat.join(room_id)
        return True

    async def _guard(self, trigger: str, handler: Callable[[], Awaitable[bool]]) -> None:
        try:
            await handler()
        except Exception:  # noqa: BLE001
            log.exception("Handling %s event failed", trigger)


__all__ = ["EventRouter"]
