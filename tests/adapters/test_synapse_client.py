from __future__ import annotations

import httpx
import pytest

from tests.support.http import make_client_factory, recording_client_factory
from workshopbot.adapters.synapse import SynapseAdminClient, SynapseAdminError
from workshopbot.config.http_resilience import ResilienceConfig
from workshopbot.config.synapse import SynapseAdminConfig

BASE_URL = "https://matrix.example.org"


def _config(token: str | None = "admin-token") -> SynapseAdminConfig:
    return SynapseAdminConfig(
        access_token=token,
        resilience=ResilienceConfig(name="synapse-admin", base_url=BASE_URL),
    )


@pytest.mark.asyncio
async def test_get_user_reads_external_ids() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "name": "@alice:example.org",
                "displayname": "Alice",
                "admin": False,
                "external_ids": [
                    {"auth_provider": "github", "external_id": "1234"},
                    {"auth_provider": "oidc-keycloak", "external_id": "kc-alice"},
                ],
            },
        )

    client = SynapseAdminClient(config=_config(), client_factory=make_client_factory(handler))

    user = await client.get_user("@alice:example.org")

    assert user is not None
    assert user.external_id_for("oidc-keycloak") == "kc-alice"
    assert user.external_id_for("saml") is None
    [request] = seen
    assert request.url.path == "/_synapse/admin/v2/users/@alice:example.org"
    assert request.headers["Authorization"] == "Bearer admin-token"


@pytest.mark.asyncio
async def test_get_user_returns_none_for_unknown_user() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"errcode": "M_NOT_FOUND", "error": "User not found"})

    client = SynapseAdminClient(config=_config(), client_factory=make_client_factory(handler))

    assert await client.get_user("@ghost:example.org") is None


@pytest.mark.asyncio
async def test_get_user_raises_on_other_errors() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403, json={"errcode": "M_FORBIDDEN", "error": "You are not a server admin"}
        )

    client = SynapseAdminClient(config=_config(), client_factory=make_client_factory(handler))

    with pytest.raises(SynapseAdminError) as excinfo:
        await client.get_user("@alice:example.org")

    assert excinfo.value.status_code == 403
    assert excinfo.value.errcode == "M_FORBIDDEN"


@pytest.mark.asyncio
async def test_transport_errors_are_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = SynapseAdminClient(config=_config(), client_factory=make_client_factory(handler))

    with pytest.raises(SynapseAdminError, match="request failed"):
        await client.get_user("@alice:example.org")


@pytest.mark.asyncio
async def test_token_provider_is_used_without_configured_token() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"name": "@alice:example.org"})

    client = SynapseAdminClient(
        config=_config(token=None),
        token_provider=lambda: "login-token",
        client_factory=make_client_factory(handler),
    )

    user = await client.get_user("@alice:example.org")

    assert user is not None
    assert user.external_ids == []
    assert seen == ["Bearer login-token"]


@pytest.mark.asyncio
async def test_missing_token_is_an_error() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = SynapseAdminClient(
        config=_config(token=None), client_factory=make_client_factory(handler)
    )

    with pytest.raises(SynapseAdminError, match="No access token"):
        await client.get_user("@alice:example.org")


@pytest.mark.asyncio
async def test_requests_share_one_http_client() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "@alice:example.org"})

    factory, built = recording_client_factory(handler)
    client = SynapseAdminClient(config=_config(), client_factory=factory)

    await client.get_user("@alice:example.org")
    await client.get_user("@bob:example.org")
    await client.aclose()

    assert len(built) == 1
    assert built[0]._client.is_closed  # type: ignore[reportPrivateUsage]
