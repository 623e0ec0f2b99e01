"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from logging import getLogger
from signal import SIGTERM
from typing import TYPE_CHECKING

import nio

from workshopbot.adapters.directory import KeycloakDirectory
from workshopbot.adapters.keycloak.client import KeycloakAdminClient
from workshopbot.adapters.matrix import EventRouter, MatrixAccountDataClient, NioChatGateway
from workshopbot.adapters.synapse.client import SynapseAdminClient
from workshopbot.config.errors import ConfigurationError
from workshopbot.domain.classification import GroupClassifier
from workshopbot.domain.errors import RemoteOperationError
from workshopbot.domain.naming import RoomNamingPolicy, server_name_from_user_id
from workshopbot.domain.reconciliation import ReconciliationEngine
from workshopbot.domain.resolver import SpaceRoomResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from workshopbot.config.bot import BotConfig
    from workshopbot.config.keycloak import KeycloakConfig
    from workshopbot.config.matrix import MatrixConfig
    from workshopbot.config.synapse import SynapseAdminConfig
    from workshopbot.domain.model import WorkshopGroup
    from workshopbot.domain.ports import ChatGateway, DirectoryLookup

log = getLogger(__name__)

SYNC_TIMEOUT_MS = 30_000
REQUEST_TIMEOUT_SECONDS = 30.0
MAX_REQUEST_TIMEOUTS = 3


@dataclass(frozen=True, slots=True)
class Settings:
    matrix: MatrixConfig
    synapse: SynapseAdminConfig
    keycloak: KeycloakConfig
    bot: BotConfig


def build_classifier(settings: Settings) -> GroupClassifier:
    return GroupClassifier(
        owner_token=settings.bot.owner_token,
        crew_token=settings.bot.crew_token,
        slug_attribute=settings.keycloak.slug_attribute,
        name_attribute=settings.keycloak.name_attribute,
    )


def build_directory(
    settings: Settings,
    *,
    token_provider: Callable[[], str | None] | None = None,
) -> tuple[KeycloakDirectory, KeycloakAdminClient]:
    keycloak = KeycloakAdminClient(config=settings.keycloak)
    synapse = SynapseAdminClient(config=settings.synapse, token_provider=token_provider)
    directory = KeycloakDirectory(
        synapse=synapse,
        keycloak=keycloak,
        auth_provider=settings.keycloak.auth_provider,
    )
    return directory, keycloak


def build_engine(
    settings: Settings,
    *,
    chat: ChatGateway,
    directory: DirectoryLookup,
) -> ReconciliationEngine:
    bot = settings.bot
    naming = RoomNamingPolicy(
        server_name=server_name_from_user_id(settings.matrix.user_id),
        general_suffix=bot.general_suffix,
        alias_suffix=bot.alias_suffix,
    )
    resolver = SpaceRoomResolver(
        chat=chat,
        naming=naming,
        general_room_public=bot.general_room_public,
        room_version=bot.room_version,
    )
    return ReconciliationEngine(
        directory=directory,
        chat=chat,
        resolver=resolver,
        classifier=build_classifier(settings),
        messages=bot.messages,
        command_prefix=bot.command_prefix,
        admin_power_level=bot.admin_power_level,
    )


async def login(client: nio.AsyncClient, config: MatrixConfig, *, device_name: str) -> None:
    """Authenticate the bot account with a token or, failing that, a password."""

    if config.access_token is not None:
        client.access_token = config.access_token
        response = await client.whoami()
        if isinstance(response, nio.WhoamiError):
            raise ConfigurationError(f"Matrix access token rejected: {response.message}")
        if response.user_id != config.user_id:
            raise ConfigurationError(
                f"Access token belongs to {response.user_id}, not {config.user_id}"
            )
        client.user_id = response.user_id
        if response.device_id and not client.device_id:
            client.device_id = response.device_id
        return

    response = await client.login(password=config.password, device_name=device_name)
    if isinstance(response, nio.LoginError):
        raise ConfigurationError(f"Matrix login failed: {response.message}")


async def run_bot(settings: Settings) -> None:
    """Log in, subscribe to events and serve until cancelled."""

    client = nio.AsyncClient(
        settings.matrix.homeserver_url,
        settings.matrix.user_id,
        device_id=settings.matrix.device_id,
        config=nio.AsyncClientConfig(
            max_timeouts=MAX_REQUEST_TIMEOUTS,
            request_timeout=REQUEST_TIMEOUT_SECONDS,
        ),
    )
    refresh_task: asyncio.Task[None] | None = None
    account_data: MatrixAccountDataClient | None = None
    directory: KeycloakDirectory | None = None
    try:
        await login(client, settings.matrix, device_name=settings.bot.app_name)
        account_data = MatrixAccountDataClient(
            resilience=settings.matrix.resilience,
            user_id=client.user_id,
            token_provider=lambda: client.access_token or None,
        )
        chat = NioChatGateway(client, account_data=account_data)
        directory, keycloak = build_directory(settings, token_provider=lambda: chat.access_token)
        engine = build_engine(settings, chat=chat, directory=directory)
        router = EventRouter(
            engine=engine,
            chat=chat,
            monitored_room_id=settings.bot.monitored_room_id,
            command_prefix=settings.bot.command_prefix,
            stale_after=settings.bot.stale_after,
        )
        router.register(client)

        try:
            await keycloak.tokens.refresh()
        except RemoteOperationError:
            log.exception("Initial Keycloak authentication failed, will retry in background")
        refresh_task = asyncio.create_task(
            keycloak.tokens.run_refresh_loop(settings.keycloak.token_refresh_seconds)
        )

        log.info("Starting %s...", settings.bot.app_name)
        log.info("Bot account: %s", client.user_id)
        log.info("Monitoring room %s", settings.bot.monitored_room_id)
        _cancel_on_sigterm()
        await client.sync_forever(timeout=SYNC_TIMEOUT_MS, full_state=True)
    except asyncio.CancelledError:
        log.info("Stopping %s", settings.bot.app_name)
    finally:
        if refresh_task is not None:
            refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await refresh_task
        if directory is not None:
            await directory.aclose()
        if account_data is not None:
            await account_data.aclose()
        await client.close()


def _cancel_on_sigterm() -> None:
    task = asyncio.current_task()
    if task is None:
        return
    # add_signal_handler is not available on Windows event loops
    with contextlib.suppress(NotImplementedError):
        asyncio.get_running_loop().add_signal_handler(SIGTERM, task.cancel)


async def inspect_user(settings: Settings, user_id: str) -> dict[str, WorkshopGroup]:
    """Resolve ``user_id`` against the directory without touching any room."""

    directory, _ = build_directory(settings)
    try:
        directory_id = await directory.resolve_identity(user_id)
        if directory_id is None:
            log.info("User %s is not known in the directory", user_id)
            return {}
        log.info("User %s is directory user %s", user_id, directory_id)
        groups = await directory.list_groups(directory_id)
    finally:
        await directory.aclose()
    return build_classifier(settings)(groups)
