"""Directory lookup backed by the Synapse admin API and Keycloak."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from workshopbot.adapters.keycloak.translator import parse_group_membership
from workshopbot.config.keycloak import DEFAULT_AUTH_PROVIDER

if TYPE_CHECKING:
    from workshopbot.adapters.keycloak.client import KeycloakAdminClient
    from workshopbot.adapters.synapse.client import SynapseAdminClient
    from workshopbot.domain.model import GroupMembership
    from workshopbot.domain.ports import DirectoryLookup

log = getLogger(__name__)


@dataclass(slots=True)
class KeycloakDirectory:
    """Link Matrix users to Keycloak through Synapse's SSO ``external_ids``."""

    synapse: SynapseAdminClient
    keycloak: KeycloakAdminClient
    auth_provider: str = DEFAULT_AUTH_PROVIDER

    async def resolve_identity(self, user_id: str) -> str | None:
        user = await self.synapse.get_user(user_id)
        if user is None:
            return None
        directory_id = user.external_id_for(self.auth_provider)
        if directory_id is None:
            log.info("User %s has no %s identity", user_id, self.auth_provider)
        return directory_id

    async def list_groups(self, directory_id: str) -> list[GroupMembership]:
        groups = await self.keycloak.list_user_groups(directory_id)
        return [parse_group_membership(group) for group in groups]

    async def aclose(self) -> None:
        await self.synapse.aclose()
        await self.keycloak.aclose()


if TYPE_CHECKING:
    _directory_check: type[DirectoryLookup] = KeycloakDirectory
