"""Join and create-command workflows.

Both workflows are linear pipelines with early exits. Nothing is remembered
between invocations: directory data and room existence are queried fresh
every time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import InvalidSlugError, InviteError, RemoteOperationError
from .locks import KeyedLocks
from .messages import MessageTemplates
from .model import RoomIdentity, WorkshopGroup, WorkshopRole
from .resolver import DEFAULT_ADMIN_POWER_LEVEL
from .triggers import parse_command_argument

if TYPE_CHECKING:
    from .classification import GroupClassifier
    from .messages import MessageTemplate
    from .ports import ChatGateway, DirectoryLookup
    from .resolver import SpaceRoomResolver

log = getLogger(__name__)

DEFAULT_COMMAND_PREFIX = "!create"


@dataclass(slots=True)
class JoinResult:
    """Outcome of reconciling one join event."""

    user_id: str
    workshops: tuple[str, ...] = ()
    direct_room_id: str | None = None
    welcomed: list[str] = field(default_factory=list)
    invited_to: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Outcome of a successful create command."""

    slug: str
    space: RoomIdentity
    space_existed: bool
    general_room: RoomIdentity
    general_room_existed: bool


@dataclass(slots=True)
class ReconciliationEngine:
    directory: DirectoryLookup
    chat: ChatGateway
    resolver: SpaceRoomResolver
    classifier: GroupClassifier
    messages: MessageTemplates = field(default_factory=MessageTemplates)
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    admin_power_level: int = DEFAULT_ADMIN_POWER_LEVEL
    _direct_locks: KeyedLocks = field(default_factory=KeyedLocks, init=False)

    async def workshops_for(self, user_id: str) -> dict[str, WorkshopGroup]:
        """Return the workshops ``user_id`` owns or crews, keyed by slug."""

        directory_id = await self.directory.resolve_identity(user_id)
        if directory_id is None:
            log.info("User %s is not known in the directory", user_id)
            return {}
        groups = await self.directory.list_groups(directory_id)
        workshops = self.classifier(groups)
        log.debug("User %s belongs to workshops %s", user_id, sorted(workshops))
        return workshops

    async def reconcile_join(self, user_id: str) -> JoinResult:
        """Welcome a user who joined the monitored room and invite them to spaces."""

        workshops = await self.workshops_for(user_id)
        result = JoinResult(user_id=user_id, workshops=tuple(sorted(workshops)))
        if not workshops:
            return result

        for slug in result.workshops:
            try:
                await self._reconcile_workshop(user_id, workshops[slug], result)
            except (RemoteOperationError, InvalidSlugError):
                log.exception("Reconciling workshop %s for %s failed", slug, user_id)
                result.failed.append(slug)
        return result

    async def handle_create_command(
        self, sender: str, room_id: str, body: str
    ) -> CreateResult | None:
        """Create (or link) the space and general room of a workshop the sender owns."""

        slug = parse_command_argument(body, self.command_prefix)
        if slug is None:
            log.debug("Ignoring malformed command from %s: %r", sender, body)
            return None

        workshop = (await self.workshops_for(sender)).get(slug)
        if workshop is None or workshop.role is not WorkshopRole.OWNER:
            log.info("User %s is not an owner of workshop %s", sender, slug)
            return None

        admins = (sender, self.chat.user_id)
        space, space_existed = await self.resolver.resolve_or_create_space(
            slug, workshop.display_name
        )
        space_id = space.require_room_id()
        await self._invite_quietly(space_id, sender)
        await self.resolver.grant_power(space_id, admins, self.admin_power_level)

        template = self.messages.space_exists if space_existed else self.messages.space_created
        await self._send(room_id, template, sender, workshop, space)

        general, general_existed = await self.resolver.resolve_or_create_general_room(
            slug, workshop.display_name, space
        )
        general_id = general.require_room_id()
        await self.resolver.grant_power(general_id, admins, self.admin_power_level)
        await self.resolver.nest_room_under_space(space_id, general_id)

        log.info(
            "Workshop %s provisioned for %s: space=%s (existed=%s), general=%s (existed=%s)",
            slug,
            sender,
            space_id,
            space_existed,
            general_id,
            general_existed,
        )
        return CreateResult(
            slug=slug,
            space=space,
            space_existed=space_existed,
            general_room=general,
            general_room_existed=general_existed,
        )

    async def _reconcile_workshop(
        self,
        user_id: str,
        workshop: WorkshopGroup,
        result: JoinResult,
    ) -> None:
        if workshop.role not in (WorkshopRole.OWNER, WorkshopRole.CREW):
            return
        space = await self.resolver.lookup_space(workshop.slug)
        if space.room_id is not None and await self._invite_quietly(space.room_id, user_id):
            result.invited_to.append(space.room_id)
        if workshop.role is not WorkshopRole.OWNER:
            return

        if result.direct_room_id is None:
            result.direct_room_id = await self._direct_room(user_id)
        template = (
            self.messages.welcome_space_exists
            if space.exists
            else self.messages.welcome_create_space
        )
        await self._send(result.direct_room_id, template, user_id, workshop, space)
        result.welcomed.append(workshop.slug)

    async def _direct_room(self, user_id: str) -> str:
        """Return the direct room shared with ``user_id``, creating it only when missing."""

        async with self._direct_locks.hold(user_id):
            room_id = await self.chat.direct_room_for(user_id)
            if room_id is None:
                room_id = await self.chat.create_direct_room(user_id)
                log.info("Opened direct room %s with %s", room_id, user_id)
            return room_id

    async def _invite_quietly(self, room_id: str, user_id: str) -> bool:
        try:
            await self.chat.invite(room_id, user_id)
        except InviteError as exc:
            log.info("Not inviting %s to %s: %s", user_id, room_id, exc)
            return False
        return True

    async def _send(
        self,
        room_id: str,
        template: MessageTemplate,
        user_id: str,
        workshop: WorkshopGroup,
        space: RoomIdentity,
    ) -> None:
        message = template.render(
            user=user_id,
            workshop=workshop.display_name,
            slug=workshop.slug,
            command=f"{self.command_prefix.strip()} {workshop.slug}",
            space_alias=space.full_alias,
            room_alias=self.resolver.naming.general(workshop.slug).full_alias,
        )
        await self.chat.send_message(room_id, message)


__all__ = ["CreateResult", "JoinResult", "ReconciliationEngine"]
