"""HTTP client for the Keycloak token and admin endpoints."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from workshopbot.adapters.http_resilience import ResilientClient
from workshopbot.domain.errors import RemoteOperationError

from .schema import KeycloakErrorResponse, KeycloakGroup, TokenResponse
from .token import AccessToken, AccessTokenHolder

if TYPE_CHECKING:
    from collections.abc import Callable

    from workshopbot.adapters.http_resilience import ClientFactory
    from workshopbot.config.keycloak import KeycloakConfig

log = getLogger(__name__)

TOKEN_PATH = "/realms/{realm}/protocol/openid-connect/token"
USER_GROUPS_PATH = "/admin/realms/{realm}/users/{user_id}/groups"

_GROUP_LIST = TypeAdapter(list[KeycloakGroup])


class KeycloakAPIError(RemoteOperationError):
    """Raised when Keycloak rejects a request or answers unexpectedly."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class KeycloakAdminClient:
    """Low-level HTTP client for the Keycloak admin API."""

    def __init__(
        self,
        *,
        config: KeycloakConfig,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        # Shared by every request; the rate limiter lives on the client.
        self._http = (client_factory or ResilientClient)(config.resilience)
        self._clock = clock
        self.tokens = AccessTokenHolder(self.fetch_token, clock=clock)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def fetch_token(self) -> AccessToken:
        """Authenticate with the configured service credentials."""

        form: dict[str, str] = {"client_id": self._config.client_id}
        if self._config.uses_password_grant:
            form["grant_type"] = "password"
            form["username"] = self._config.username or ""
            form["password"] = self._config.password or ""
        else:
            form["grant_type"] = "client_credentials"
        if self._config.client_secret is not None:
            form["client_secret"] = self._config.client_secret

        path = TOKEN_PATH.format(realm=quote(self._config.token_realm, safe=""))
        issued_at = self._clock()
        response = await self._perform("POST", path, data=form)
        try:
            payload = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise KeycloakAPIError("Unexpected Keycloak token payload") from exc
        return AccessToken(value=payload.access_token, expires_at=issued_at + payload.expires_in)

    async def list_user_groups(self, user_id: str) -> list[KeycloakGroup]:
        """Return the groups of a Keycloak user including their attributes."""

        path = USER_GROUPS_PATH.format(
            realm=quote(self._config.realm, safe=""),
            user_id=quote(user_id, safe=""),
        )
        token = await self.tokens.get()
        response = await self._perform(
            "GET",
            path,
            params={"briefRepresentation": "false"},
            headers={"Authorization": f"Bearer {token}"},
        )
        try:
            return _GROUP_LIST.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise KeycloakAPIError("Unexpected Keycloak group payload") from exc

    async def _perform(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method, path, data=data, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            raise KeycloakAPIError(f"Keycloak request failed: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            log.error(f"Keycloak API error {response.status_code} on {path}: {message}")
            raise KeycloakAPIError(
                f"Keycloak returned {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response


def _error_message(response: httpx.Response) -> str | None:
    try:
        return KeycloakErrorResponse.model_validate(response.json()).message
    except (ValueError, ValidationError):
        return response.text or None
