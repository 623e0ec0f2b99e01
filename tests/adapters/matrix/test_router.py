from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from tests.support.fakes import BOT, FakeChatGateway, FakeDirectory, workshop_group
from workshopbot.adapters.matrix import EventRouter
from workshopbot.domain.errors import RemoteOperationError
from workshopbot.domain.reconciliation import ReconciliationEngine

MONITORED = "!lobby:example.org"
DM = "!dm:example.org"
USER = "@alice:example.org"
NOW = datetime(2025, 3, 1, 12, tzinfo=UTC)
FRESH = int((NOW - timedelta(seconds=5)).timestamp() * 1000)
STALE = int((NOW - timedelta(hours=1)).timestamp() * 1000)


@pytest.fixture
def router(chat: FakeChatGateway, engine: ReconciliationEngine) -> EventRouter:
    return EventRouter(
        engine=engine,
        chat=chat,  # type: ignore[arg-type]
        monitored_room_id=MONITORED,
        command_prefix="!create",
        stale_after=timedelta(minutes=5),
        clock=lambda: NOW,
    )


@pytest.fixture
def owner(directory: FakeDirectory) -> str:
    directory.add_user(USER, "kc-alice", workshop_group("pottery-owner", "pottery", "Pottery"))
    return USER


async def _join(router: EventRouter, **overrides: object) -> bool:
    event: dict[str, object] = {
        "room_id": MONITORED,
        "user_id": USER,
        "membership": "join",
        "prev_membership": None,
        "server_timestamp": FRESH,
    }
    event.update(overrides)
    return await router.handle_membership(**event)  # type: ignore[arg-type]


async def _message(router: EventRouter, **overrides: object) -> bool:
    event: dict[str, object] = {
        "room_id": DM,
        "sender": USER,
        "msgtype": "m.text",
        "body": "!create pottery",
        "server_timestamp": FRESH,
    }
    event.update(overrides)
    return await router.handle_message(**event)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_fresh_join_in_monitored_room_is_reconciled(
    router: EventRouter, chat: FakeChatGateway, owner: str
) -> None:
    assert await _join(router)
    assert [room.invite for room in chat.created] == [(owner,)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"room_id": "!elsewhere:example.org"},
        {"membership": "leave"},
        {"prev_membership": "join"},
        {"user_id": BOT},
        {"server_timestamp": STALE},
    ],
)
@pytest.mark.usefixtures("owner")
async def test_irrelevant_membership_changes_are_ignored(
    router: EventRouter,
    chat: FakeChatGateway,
    directory: FakeDirectory,
    overrides: dict[str, object],
) -> None:
    assert not await _join(router, **overrides)
    assert directory.identity_calls == []
    assert chat.created == []


@pytest.mark.asyncio
@pytest.mark.usefixtures("owner")
async def test_command_in_direct_chat_runs_create(
    router: EventRouter, chat: FakeChatGateway
) -> None:
    chat.member_counts[DM] = 2

    assert await _message(router)
    assert [room.alias for room in chat.created] == ["pottery", "pottery-general"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"sender": BOT},
        {"msgtype": "m.notice"},
        {"body": "hello there"},
        {"room_id": MONITORED},
        {"server_timestamp": STALE},
        {"room_id": "!group:example.org"},
    ],
)
@pytest.mark.usefixtures("owner")
async def test_irrelevant_messages_are_ignored(
    router: EventRouter,
    chat: FakeChatGateway,
    directory: FakeDirectory,
    overrides: dict[str, object],
) -> None:
    chat.member_counts[DM] = 2
    chat.member_counts["!group:example.org"] = 5
    chat.member_counts[MONITORED] = 2

    assert not await _message(router, **overrides)
    assert directory.identity_calls == []
    assert chat.created == []


@pytest.mark.asyncio
async def test_invite_to_monitored_room_is_accepted(
    router: EventRouter, chat: FakeChatGateway
) -> None:
    assert await router.handle_invite(room_id=MONITORED, user_id=BOT, membership="invite")
    assert chat.joined == [MONITORED]


@pytest.mark.asyncio
async def test_other_invites_are_ignored(router: EventRouter, chat: FakeChatGateway) -> None:
    assert not await router.handle_invite(
        room_id="!other:example.org", user_id=BOT, membership="invite"
    )
    assert not await router.handle_invite(room_id=MONITORED, user_id=USER, membership="invite")
    assert chat.joined == []


class _UnreachableDirectory(FakeDirectory):
    async def resolve_identity(self, user_id: str) -> str | None:
        raise RemoteOperationError(f"directory down for {user_id}")


@pytest.mark.asyncio
async def test_callback_failures_are_logged_not_raised(
    chat: FakeChatGateway,
    engine: ReconciliationEngine,
    caplog: pytest.LogCaptureFixture,
) -> None:
    broken = ReconciliationEngine(
        directory=_UnreachableDirectory(),
        chat=chat,
        resolver=engine.resolver,
        classifier=engine.classifier,
    )
    router = EventRouter(
        engine=broken,
        chat=chat,  # type: ignore[arg-type]
        monitored_room_id=MONITORED,
        command_prefix="!create",
        stale_after=timedelta(minutes=5),
        clock=lambda: NOW,
    )
    room = SimpleNamespace(room_id=MONITORED)
    event = SimpleNamespace(
        state_key=USER, membership="join", prev_membership="invite", server_timestamp=FRESH
    )

    await router.on_member_event(room, event)  # type: ignore[arg-type]

    assert "Handling membership event failed" in caplog.text
    assert chat.created == []


@pytest.mark.asyncio
@pytest.mark.usefixtures("owner")
async def test_text_callback_reads_msgtype_from_source(
    router: EventRouter, chat: FakeChatGateway
) -> None:
    chat.member_counts[DM] = 2
    room = SimpleNamespace(room_id=DM)
    event = SimpleNamespace(
        sender=USER,
        body="!create pottery",
        server_timestamp=FRESH,
        source={"content": {"msgtype": "m.text", "body": "!create pottery"}},
    )

    await router.on_text_message(room, event)  # type: ignore[arg-type]

    assert len(chat.created) == 2
