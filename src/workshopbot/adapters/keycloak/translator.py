"""Translate Keycloak payloads into domain group memberships."""

from __future__ import annotations

from typing import TYPE_CHECKING

from workshopbot.domain.model import GroupMembership

if TYPE_CHECKING:
    from .schema import KeycloakGroup


def parse_group_membership(group: KeycloakGroup) -> GroupMembership:
    return GroupMembership(
        name=group.name,
        path=group.path,
        attributes={key: tuple(values) for key, values in group.attributes.items()},
    )
