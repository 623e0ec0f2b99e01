"""Client-server calls for the bot's ``m.direct`` account data.

matrix-nio keeps no writable copy of global account data, so the map of direct
rooms is read and written over plain HTTP with the bot's access token.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from workshopbot.adapters.http_resilience import ResilientClient
from workshopbot.domain.errors import RemoteOperationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from workshopbot.adapters.http_resilience import ClientFactory
    from workshopbot.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

DIRECT_EVENT_TYPE = "m.direct"
ACCOUNT_DATA_PATH = "/_matrix/client/v3/user/{user_id}/account_data/{event_type}"

DirectRooms = dict[str, list[str]]
_DIRECT_ROOMS = TypeAdapter(DirectRooms)


class AccountDataError(RemoteOperationError):
    """Raised when account data cannot be read or written."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MatrixAccountDataClient:
    """Read and update the bot's map of direct rooms (user id -> room ids)."""

    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        user_id: str,
        token_provider: Callable[[], str | None],
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._user_id = user_id
        self._token_provider = token_provider
        self._http = (client_factory or ResilientClient)(resilience)
        self._write_lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def direct_rooms(self) -> DirectRooms:
        """Return the ``m.direct`` map; an account that never stored one has an empty map."""

        response = await self._request("GET")
        if response.status_code == httpx.codes.NOT_FOUND:
            return {}
        _raise_for_status(response, "Reading m.direct")
        try:
            return _DIRECT_ROOMS.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise AccountDataError("Unexpected m.direct payload") from exc

    async def add_direct_room(self, user_id: str, room_id: str) -> None:
        """Record ``room_id`` as a direct room with ``user_id``."""

        async with self._write_lock:
            rooms = await self.direct_rooms()
            known = rooms.setdefault(user_id, [])
            if room_id in known:
                return
            known.append(room_id)
            response = await self._request("PUT", json=rooms)
            _raise_for_status(response, "Writing m.direct")
        log.debug("Recorded %s as direct room with %s", room_id, user_id)

    async def _request(self, method: str, *, json: object = None) -> httpx.Response:
        token = self._token_provider()
        if not token:
            raise AccountDataError("No access token available for account data")
        path = ACCOUNT_DATA_PATH.format(
            user_id=quote(self._user_id, safe=""), event_type=DIRECT_EVENT_TYPE
        )
        try:
            return await self._http.request(
                method, path, json=json, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as exc:
            raise AccountDataError(f"Account data request failed: {exc}") from exc


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_error:
        raise AccountDataError(
            f"{action} failed: {response.status_code}",
            status_code=response.status_code,
        )


__all__ = ["AccountDataError", "MatrixAccountDataClient"]
