from __future__ import annotations

import httpx
import pytest

from tests.support.http import make_client_factory
from workshopbot.adapters.directory import KeycloakDirectory
from workshopbot.adapters.keycloak import KeycloakAdminClient
from workshopbot.adapters.synapse import SynapseAdminClient
from workshopbot.config.http_resilience import ResilienceConfig
from workshopbot.config.keycloak import KeycloakConfig
from workshopbot.config.synapse import SynapseAdminConfig
from workshopbot.domain.classification import classify_groups
from workshopbot.domain.model import WorkshopRole

USERS = {
    "@alice:example.org": {
        "name": "@alice:example.org",
        "external_ids": [{"auth_provider": "oidc-keycloak", "external_id": "kc-alice"}],
    },
    "@bob:example.org": {
        "name": "@bob:example.org",
        "external_ids": [{"auth_provider": "github", "external_id": "42"}],
    },
}

GROUPS = [
    {
        "id": "g1",
        "name": "Pottery Owner",
        "attributes": {"workshop_slug": ["pottery"], "workshop_name": ["Pottery Workshop"]},
    },
    {"id": "g2", "name": "Pottery Crew", "attributes": {"workshop_slug": ["pottery"]}},
]


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.startswith("/_synapse/admin/v2/users/"):
        user = USERS.get(path.rsplit("/", 1)[-1])
        if user is None:
            return httpx.Response(404, json={"errcode": "M_NOT_FOUND"})
        return httpx.Response(200, json=user)
    if path.endswith("/token"):
        return httpx.Response(200, json={"access_token": "t", "expires_in": 60})
    if path == "/admin/realms/workshops/users/kc-alice/groups":
        return httpx.Response(200, json=GROUPS)
    return httpx.Response(404)


@pytest.fixture
def directory() -> KeycloakDirectory:
    factory = make_client_factory(_handler)
    synapse = SynapseAdminClient(
        config=SynapseAdminConfig(
            access_token="admin",
            resilience=ResilienceConfig(name="synapse", base_url="https://matrix.example.org"),
        ),
        client_factory=factory,
    )
    keycloak = KeycloakAdminClient(
        config=KeycloakConfig(
            realm="workshops",
            client_id="bot",
            client_secret="s",
            resilience=ResilienceConfig(name="keycloak", base_url="https://id.example.org"),
        ),
        client_factory=factory,
    )
    return KeycloakDirectory(synapse=synapse, keycloak=keycloak)


@pytest.mark.asyncio
async def test_resolve_identity_uses_configured_provider(directory: KeycloakDirectory) -> None:
    assert await directory.resolve_identity("@alice:example.org") == "kc-alice"


@pytest.mark.asyncio
async def test_resolve_identity_without_linked_account(directory: KeycloakDirectory) -> None:
    assert await directory.resolve_identity("@bob:example.org") is None


@pytest.mark.asyncio
async def test_resolve_identity_for_unknown_user(directory: KeycloakDirectory) -> None:
    assert await directory.resolve_identity("@ghost:example.org") is None


@pytest.mark.asyncio
async def test_list_groups_feeds_classification(directory: KeycloakDirectory) -> None:
    groups = await directory.list_groups("kc-alice")

    assert [group.name for group in groups] == ["Pottery Owner", "Pottery Crew"]
    workshops = classify_groups(groups)
    assert workshops["pottery"].role is WorkshopRole.OWNER
    assert workshops["pottery"].display_name == "Pottery Workshop"
