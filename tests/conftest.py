from __future__ import annotations

import pytest

from tests.support.fakes import SERVER, FakeChatGateway, FakeDirectory
from workshopbot.domain.classification import GroupClassifier
from workshopbot.domain.naming import RoomNamingPolicy
from workshopbot.domain.reconciliation import ReconciliationEngine
from workshopbot.domain.resolver import SpaceRoomResolver


@pytest.fixture
def chat() -> FakeChatGateway:
    return FakeChatGateway()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def naming() -> RoomNamingPolicy:
    return RoomNamingPolicy(server_name=SERVER)


@pytest.fixture
def resolver(chat: FakeChatGateway, naming: RoomNamingPolicy) -> SpaceRoomResolver:
    return SpaceRoomResolver(chat=chat, naming=naming)


@pytest.fixture
def engine(
    chat: FakeChatGateway,
    directory: FakeDirectory,
    resolver: SpaceRoomResolver,
) -> ReconciliationEngine:
    return ReconciliationEngine(
        directory=directory,
        chat=chat,
        resolver=resolver,
        classifier=GroupClassifier(),
    )
