"""Map raw directory groups onto workshop roles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .model import WorkshopGroup, WorkshopRole

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import GroupMembership

DEFAULT_OWNER_TOKEN = "owner"
DEFAULT_CREW_TOKEN = "crew"
DEFAULT_SLUG_ATTRIBUTE = "workshop_slug"
DEFAULT_NAME_ATTRIBUTE = "workshop_name"


@dataclass(frozen=True, slots=True)
class GroupClassifier:
    owner_token: str = DEFAULT_OWNER_TOKEN
    crew_token: str = DEFAULT_CREW_TOKEN
    slug_attribute: str = DEFAULT_SLUG_ATTRIBUTE
    name_attribute: str = DEFAULT_NAME_ATTRIBUTE

    def __call__(self, groups: Iterable[GroupMembership]) -> dict[str, WorkshopGroup]:
        return classify_groups(
            groups,
            owner_token=self.owner_token,
            crew_token=self.crew_token,
            slug_attribute=self.slug_attribute,
            name_attribute=self.name_attribute,
        )


def role_for_group_name(name: str, *, owner_token: str, crew_token: str) -> WorkshopRole:
    lowered = name.casefold()
    if owner_token.casefold() in lowered:
        return WorkshopRole.OWNER
    if crew_token.casefold() in lowered:
        return WorkshopRole.CREW
    return WorkshopRole.NONE


def classify_groups(
    groups: Iterable[GroupMembership],
    *,
    owner_token: str = DEFAULT_OWNER_TOKEN,
    crew_token: str = DEFAULT_CREW_TOKEN,
    slug_attribute: str = DEFAULT_SLUG_ATTRIBUTE,
    name_attribute: str = DEFAULT_NAME_ATTRIBUTE,
) -> dict[str, WorkshopGroup]:
    """Merge groups by workshop slug and keep only slugs with a role.

    Groups without a slug attribute are unrelated to workshops and dropped.
    When several groups share a slug, ``OWNER`` beats ``CREW`` beats ``NONE``.
    """

    if not owner_token or not crew_token:
        raise ValueError("Owner and crew tokens must be non-empty")

    roles: dict[str, WorkshopRole] = {}
    names: dict[str, str] = {}
    for group in groups:
        slug = group.attribute(slug_attribute)
        if slug is None:
            continue
        names.setdefault(slug, group.attribute(name_attribute) or slug)
        role = role_for_group_name(group.name, owner_token=owner_token, crew_token=crew_token)
        roles[slug] = _stronger(roles.get(slug, WorkshopRole.NONE), role)

    return {
        slug: WorkshopGroup(slug=slug, display_name=names[slug], role=role)
        for slug, role in roles.items()
        if role is not WorkshopRole.NONE
    }


_PRECEDENCE = {WorkshopRole.NONE: 0, WorkshopRole.CREW: 1, WorkshopRole.OWNER: 2}


def _stronger(current: WorkshopRole, candidate: WorkshopRole) -> WorkshopRole:
    return candidate if _PRECEDENCE[candidate] > _PRECEDENCE[current] else current


__all__ = ["GroupClassifier", "classify_groups", "role_for_group_name"]
