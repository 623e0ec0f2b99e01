"""Public interface for the Keycloak adapter."""

from __future__ import annotations

from .client import KeycloakAdminClient, KeycloakAPIError
from .schema import KeycloakGroup, TokenResponse
from .token import AccessToken, AccessTokenHolder
from .translator import parse_group_membership

__all__ = [
    "AccessToken",
    "AccessTokenHolder",
    "KeycloakAPIError",
    "KeycloakAdminClient",
    "KeycloakGroup",
    "TokenResponse",
    "parse_group_membership",
]
