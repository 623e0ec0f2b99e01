"""Deterministic alias names for workshop spaces and rooms."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidSlugError
from .model import RoomIdentity, RoomKind

DEFAULT_GENERAL_SUFFIX = "-general"

_INVALID_LOCALPART = re.compile(r"[\s:#]")


@dataclass(frozen=True, slots=True)
class RoomNamingPolicy:
    """Derive space and general-room aliases from a workshop slug.

    ``alias_suffix`` is appended to every local part and lets a deployment
    start over with fresh aliases; it is empty in normal operation.
    """

    server_name: str
    general_suffix: str = DEFAULT_GENERAL_SUFFIX
    alias_suffix: str = ""

    def __post_init__(self) -> None:
        if not self.server_name:
            raise ValueError("Server name must not be empty")
        if not self.general_suffix:
            raise ValueError("General room suffix must not be empty")

    def local_alias(self, slug: str, kind: RoomKind) -> str:
        if not slug or _INVALID_LOCALPART.search(slug):
            raise InvalidSlugError(f"Slug cannot be used in a room alias: {slug!r}")
        if kind is RoomKind.SPACE:
            return f"{slug}{self.alias_suffix}"
        return f"{slug}{self.general_suffix}{self.alias_suffix}"

    def identity(self, slug: str, kind: RoomKind) -> RoomIdentity:
        local = self.local_alias(slug, kind)
        return RoomIdentity(
            kind=kind,
            slug=slug,
            local_alias=local,
            full_alias=f"#{local}:{self.server_name}",
        )

    def space(self, slug: str) -> RoomIdentity:
        return self.identity(slug, RoomKind.SPACE)

    def general(self, slug: str) -> RoomIdentity:
        return self.identity(slug, RoomKind.GENERAL)


def server_name_from_user_id(user_id: str) -> str:
    """Return the server part of a Matrix user id (``@local:server``)."""

    _, sep, server = user_id.partition(":")
    if not sep or not server:
        raise ValueError(f"Not a Matrix user id: {user_id}")
    return server


__all__ = ["DEFAULT_GENERAL_SUFFIX", "RoomNamingPolicy", "server_name_from_user_id"]
