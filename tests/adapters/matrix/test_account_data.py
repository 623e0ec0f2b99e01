from __future__ import annotations

import json

import httpx
import pytest

from tests.support.http import make_client_factory, recording_client_factory
from workshopbot.adapters.matrix import AccountDataError, MatrixAccountDataClient
from workshopbot.config.matrix import MatrixConfig

BOT = "@bot:example.org"
DIRECT_PATH = "/_matrix/client/v3/user/@bot:example.org/account_data/m.direct"

MATRIX = MatrixConfig(
    homeserver_url="https://matrix.example.org", user_id=BOT, access_token="syt_bot"
)


class AccountDataServer:
    """Keeps one account data document and answers GET/PUT for it."""

    def __init__(self, direct: dict[str, list[str]] | None = None) -> None:
        self.direct = direct
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.url.path == DIRECT_PATH
        if request.method == "PUT":
            self.direct = json.loads(request.content)
            return httpx.Response(200, json={})
        if self.direct is None:
            return httpx.Response(404, json={"errcode": "M_NOT_FOUND"})
        return httpx.Response(200, json=self.direct)

    @property
    def writes(self) -> int:
        return sum(request.method == "PUT" for request in self.requests)


def _client(handler: AccountDataServer) -> MatrixAccountDataClient:
    return MatrixAccountDataClient(
        resilience=MATRIX.resilience,
        user_id=BOT,
        token_provider=lambda: "syt_bot",
        client_factory=make_client_factory(handler),
    )


@pytest.mark.asyncio
async def test_missing_account_data_is_an_empty_map() -> None:
    server = AccountDataServer()

    assert await _client(server).direct_rooms() == {}
    [request] = server.requests
    assert request.headers["Authorization"] == "Bearer syt_bot"


@pytest.mark.asyncio
async def test_add_direct_room_keeps_existing_entries() -> None:
    server = AccountDataServer({"@carol:example.org": ["!c:x"], "@alice:example.org": ["!a1:x"]})
    client = _client(server)

    await client.add_direct_room("@alice:example.org", "!a2:x")
    await client.add_direct_room("@bob:example.org", "!b:x")

    assert server.direct == {
        "@carol:example.org": ["!c:x"],
        "@alice:example.org": ["!a1:x", "!a2:x"],
        "@bob:example.org": ["!b:x"],
    }


@pytest.mark.asyncio
async def test_add_direct_room_skips_known_rooms() -> None:
    server = AccountDataServer({"@alice:example.org": ["!a:x"]})

    await _client(server).add_direct_room("@alice:example.org", "!a:x")

    assert server.writes == 0


@pytest.mark.asyncio
async def test_errors_carry_status() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"errcode": "M_FORBIDDEN"})

    client = MatrixAccountDataClient(
        resilience=MATRIX.resilience,
        user_id=BOT,
        token_provider=lambda: "syt_bot",
        client_factory=make_client_factory(handler),
    )

    with pytest.raises(AccountDataError) as excinfo:
        await client.direct_rooms()

    assert excinfo.value.status_code == 403


@pytest.mark.asyncio
async def test_unexpected_payload_is_an_error() -> None:
    server = AccountDataServer({"@alice:example.org": "!a:x"})  # type: ignore[dict-item]

    with pytest.raises(AccountDataError, match="Unexpected"):
        await _client(server).direct_rooms()


@pytest.mark.asyncio
async def test_missing_token_is_an_error() -> None:
    factory, built = recording_client_factory(AccountDataServer())
    client = MatrixAccountDataClient(
        resilience=MATRIX.resilience,
        user_id=BOT,
        token_provider=lambda: None,
        client_factory=factory,
    )

    with pytest.raises(AccountDataError, match="No access token"):
        await client.direct_rooms()

    await client.aclose()
    assert len(built) == 1
    assert built[0]._client.is_closed  # type: ignore[reportPrivateUsage]
