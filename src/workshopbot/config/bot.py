"""Behaviour of the provisioning bot: monitored room, commands and messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from workshopbot.domain.classification import DEFAULT_CREW_TOKEN, DEFAULT_OWNER_TOKEN
from workshopbot.domain.messages import (
    DEFAULT_SPACE_CREATED,
    DEFAULT_SPACE_EXISTS,
    DEFAULT_WELCOME_CREATE_SPACE,
    DEFAULT_WELCOME_SPACE_EXISTS,
    MessageTemplate,
    MessageTemplates,
)
from workshopbot.domain.naming import DEFAULT_GENERAL_SUFFIX
from workshopbot.domain.reconciliation import DEFAULT_COMMAND_PREFIX
from workshopbot.domain.resolver import DEFAULT_ADMIN_POWER_LEVEL

from .env import env_bool, env_float, env_int, env_str, optional_env_var, require_env_var
from .errors import ConfigurationError

DEFAULT_APP_NAME = "workshopbot"
DEFAULT_STALE_EVENT_SECONDS = 300.0


@dataclass(frozen=True)
class BotConfig:
    monitored_room_id: str
    app_name: str = DEFAULT_APP_NAME
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    owner_token: str = DEFAULT_OWNER_TOKEN
    crew_token: str = DEFAULT_CREW_TOKEN
    general_suffix: str = DEFAULT_GENERAL_SUFFIX
    alias_suffix: str = ""
    stale_after: timedelta = timedelta(seconds=DEFAULT_STALE_EVENT_SECONDS)
    admin_power_level: int = DEFAULT_ADMIN_POWER_LEVEL
    general_room_public: bool = False
    room_version: str | None = None
    messages: MessageTemplates = field(default_factory=MessageTemplates)

    def __post_init__(self) -> None:
        if not self.monitored_room_id.startswith("!"):
            raise ConfigurationError(
                f"MONITORED_ROOM_ID is not a room id: {self.monitored_room_id}"
            )
        if not self.command_prefix.strip():
            raise ConfigurationError("COMMAND_PREFIX must not be blank")
        if not self.general_suffix:
            raise ConfigurationError("GENERAL_ROOM_SUFFIX must not be empty")
        if self.stale_after <= timedelta(0):
            raise ConfigurationError("STALE_EVENT_SECONDS must be positive")


def _template(name: str, default: str) -> MessageTemplate:
    return MessageTemplate(
        text=env_str(name, default),
        html=optional_env_var(f"{name}_HTML"),
    )


def get_message_templates() -> MessageTemplates:
    return MessageTemplates(
        welcome_space_exists=_template("MSG_WELCOME_SPACE_EXISTS", DEFAULT_WELCOME_SPACE_EXISTS),
        welcome_create_space=_template("MSG_WELCOME_CREATE_SPACE", DEFAULT_WELCOME_CREATE_SPACE),
        space_created=_template("MSG_SPACE_CREATED", DEFAULT_SPACE_CREATED),
        space_exists=_template("MSG_SPACE_EXISTS", DEFAULT_SPACE_EXISTS),
    )


def get_bot_config() -> BotConfig:
    return BotConfig(
        monitored_room_id=require_env_var("MONITORED_ROOM_ID"),
        app_name=optional_env_var("APP_NAME") or DEFAULT_APP_NAME,
        command_prefix=optional_env_var("COMMAND_PREFIX") or DEFAULT_COMMAND_PREFIX,
        owner_token=optional_env_var("OWNER_GROUP_TOKEN") or DEFAULT_OWNER_TOKEN,
        crew_token=optional_env_var("CREW_GROUP_TOKEN") or DEFAULT_CREW_TOKEN,
        general_suffix=optional_env_var("GENERAL_ROOM_SUFFIX") or DEFAULT_GENERAL_SUFFIX,
        alias_suffix=optional_env_var("ALIAS_SUFFIX") or "",
        stale_after=timedelta(
            seconds=env_float("STALE_EVENT_SECONDS", DEFAULT_STALE_EVENT_SECONDS)
        ),
        admin_power_level=env_int("ADMIN_POWER_LEVEL", DEFAULT_ADMIN_POWER_LEVEL),
        general_room_public=env_bool("GENERAL_ROOM_PUBLIC", default=False),
        room_version=optional_env_var("ROOM_VERSION"),
        messages=get_message_templates(),
    )
