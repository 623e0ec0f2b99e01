"""Message templates sent to users."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .model import OutgoingMessage

if TYPE_CHECKING:
    from collections.abc import Mapping


class _KeepMissing(dict[str, str]):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render(template: str, values: Mapping[str, str]) -> str:
    """Fill named placeholders; unknown placeholders stay as written."""

    return template.format_map(_KeepMissing(values))


@dataclass(frozen=True, slots=True)
class MessageTemplate:
    text: str
    html: str | None = None

    def render(self, **values: str) -> OutgoingMessage:
        formatted = render(self.html, values) if self.html else None
        return OutgoingMessage(body=render(self.text, values), formatted_body=formatted)


DEFAULT_WELCOME_SPACE_EXISTS = (
    "Welcome {user}! The space for {workshop} already exists: {space_alias}."
)
DEFAULT_WELCOME_CREATE_SPACE = (
    "Welcome {user}! You own the workshop {workshop}. "
    "Send `{command}` in this chat to create its space."
)
DEFAULT_SPACE_CREATED = "The space {space_alias} for {workshop} has been created."
DEFAULT_SPACE_EXISTS = "The space {space_alias} for {workshop} already exists."


@dataclass(frozen=True, slots=True)
class MessageTemplates:
    welcome_space_exists: MessageTemplate = MessageTemplate(DEFAULT_WELCOME_SPACE_EXISTS)
    welcome_create_space: MessageTemplate = MessageTemplate(DEFAULT_WELCOME_CREATE_SPACE)
    space_created: MessageTemplate = MessageTemplate(DEFAULT_SPACE_CREATED)
    space_exists: MessageTemplate = MessageTemplate(DEFAULT_SPACE_EXISTS)


__all__ = ["MessageTemplate", "MessageTemplates", "render"]
