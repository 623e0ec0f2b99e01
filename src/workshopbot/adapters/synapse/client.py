"""HTTP client for the Synapse admin API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from workshopbot.adapters.http_resilience import ResilientClient
from workshopbot.domain.errors import RemoteOperationError

from .schema import SynapseErrorResponse, SynapseUser

if TYPE_CHECKING:
    from collections.abc import Callable

    from workshopbot.adapters.http_resilience import ClientFactory
    from workshopbot.config.synapse import SynapseAdminConfig

log = getLogger(__name__)

USERS_PATH = "/_synapse/admin/v2/users/{user_id}"


class SynapseAdminError(RemoteOperationError):
    """Raised when the Synapse admin API fails or answers unexpectedly."""

    def __init__(
        self, message: str, *, status_code: int | None = None, errcode: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errcode = errcode


class SynapseAdminClient:
    """Read user records through the Synapse admin API.

    ``token_provider`` supplies the access token when none is configured, which
    is the case when the bot logs in with a password.
    """

    def __init__(
        self,
        *,
        config: SynapseAdminConfig,
        token_provider: Callable[[], str | None] | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config
        self._token_provider = token_provider
        # Shared by every request; the rate limiter lives on the client.
        self._http = (client_factory or ResilientClient)(config.resilience)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_user(self, user_id: str) -> SynapseUser | None:
        """Return the user record or ``None`` if Synapse does not know the user."""

        path = USERS_PATH.format(user_id=quote(user_id, safe=""))
        try:
            response = await self._http.get(path, headers=self._headers())
        except httpx.HTTPError as exc:
            raise SynapseAdminError(f"Synapse admin request failed: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            log.debug("Synapse does not know %s", user_id)
            return None
        if response.is_error:
            error = _parse_error(response)
            raise SynapseAdminError(
                f"Synapse admin API returned {response.status_code}: {error.error}",
                status_code=response.status_code,
                errcode=error.errcode,
            )
        try:
            return SynapseUser.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SynapseAdminError("Unexpected Synapse user payload") from exc

    def _headers(self) -> dict[str, str]:
        token = self._config.access_token
        if token is None and self._token_provider is not None:
            token = self._token_provider()
        if not token:
            raise SynapseAdminError("No access token available for the Synapse admin API")
        return {"Authorization": f"Bearer {token}"}


def _parse_error(response: httpx.Response) -> SynapseErrorResponse:
    try:
        return SynapseErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return SynapseErrorResponse(error=response.text or None)
