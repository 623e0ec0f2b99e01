"""Shared, periodically refreshed access token for the Keycloak admin API."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import getLogger

from workshopbot.domain.errors import RemoteOperationError

log = getLogger(__name__)

# Tokens are treated as expired this many seconds before Keycloak says so.
EXPIRY_MARGIN_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class AccessToken:
    value: str
    expires_at: float


TokenFetcher = Callable[[], Awaitable[AccessToken]]


class AccessTokenHolder:
    """Own the current token and serialise refreshes.

    Handlers call :meth:`get`; a background task calls :meth:`run_refresh_loop`.
    Concurrent callers share one in-flight refresh instead of each requesting
    their own token.
    """

    def __init__(
        self,
        fetch: TokenFetcher,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> AccessToken | None:
        return self._token

    def is_fresh(self) -> bool:
        token = self._token
        return token is not None and token.expires_at - EXPIRY_MARGIN_SECONDS > self._clock()

    async def get(self) -> str:
        if not self.is_fresh():
            async with self._lock:
                if not self.is_fresh():
                    await self._refresh_locked()
        token = self._token
        if token is None:
            raise RemoteOperationError("No Keycloak access token available")
        return token.value

    async def refresh(self) -> AccessToken:
        async with self._lock:
            return await self._refresh_locked()

    async def run_refresh_loop(self, interval_seconds: float) -> None:
        """Refresh the token every ``interval_seconds`` until cancelled."""

        while True:
            try:
                await self.refresh()
            except RemoteOperationError:
                log.exception("Refreshing the Keycloak access token failed")
            await asyncio.sleep(interval_seconds)

    async def _refresh_locked(self) -> AccessToken:
        token = await self._fetch()
        self._token = token
        log.debug("Refreshed Keycloak access token")
        return token


__all__ = ["AccessToken", "AccessTokenHolder", "TokenFetcher"]
