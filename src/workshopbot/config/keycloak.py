"""Keycloak admin API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from workshopbot.domain.classification import DEFAULT_NAME_ATTRIBUTE, DEFAULT_SLUG_ATTRIBUTE

from .env import env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig
from .matrix import normalize_base_url

KEYCLOAK_TIMEOUT_SECONDS = 10.0
DEFAULT_AUTH_PROVIDER = "oidc-keycloak"
# Keycloak issues 60 second access tokens by default.
DEFAULT_TOKEN_REFRESH_SECONDS = 50.0


@dataclass(frozen=True)
class KeycloakConfig:
    """Holds Keycloak realm, service credentials and attribute names."""

    realm: str
    client_id: str
    resilience: ResilienceConfig
    auth_realm: str | None = None
    client_secret: str | None = None
    username: str | None = None
    password: str | None = None
    auth_provider: str = DEFAULT_AUTH_PROVIDER
    slug_attribute: str = DEFAULT_SLUG_ATTRIBUTE
    name_attribute: str = DEFAULT_NAME_ATTRIBUTE
    token_refresh_seconds: float = DEFAULT_TOKEN_REFRESH_SECONDS

    def __post_init__(self) -> None:
        if self.token_refresh_seconds <= 0:
            raise ConfigurationError("KEYCLOAK_TOKEN_REFRESH_SECONDS must be positive")

    @property
    def token_realm(self) -> str:
        """Realm the service account authenticates against (e.g. ``master``)."""

        return self.auth_realm or self.realm

    @property
    def uses_password_grant(self) -> bool:
        return self.username is not None


def get_keycloak_config() -> KeycloakConfig:
    values = require_env_vars(("KEYCLOAK_URL", "KEYCLOAK_REALM", "KEYCLOAK_CLIENT_ID"))
    client_secret = optional_env_var("KEYCLOAK_CLIENT_SECRET")
    username = optional_env_var("KEYCLOAK_USERNAME")
    password = optional_env_var("KEYCLOAK_PASSWORD")
    if username is not None and password is None:
        raise MissingConfigurationError("Missing configuration for: KEYCLOAK_PASSWORD")
    if username is None and client_secret is None:
        raise MissingConfigurationError(
            "Missing configuration for: KEYCLOAK_CLIENT_SECRET or KEYCLOAK_USERNAME"
        )

    return KeycloakConfig(
        realm=values["KEYCLOAK_REALM"],
        client_id=values["KEYCLOAK_CLIENT_ID"],
        auth_realm=optional_env_var("KEYCLOAK_AUTH_REALM"),
        client_secret=client_secret,
        username=username,
        password=password,
        auth_provider=optional_env_var("KEYCLOAK_AUTH_PROVIDER") or DEFAULT_AUTH_PROVIDER,
        slug_attribute=optional_env_var("KEYCLOAK_SLUG_ATTRIBUTE") or DEFAULT_SLUG_ATTRIBUTE,
        name_attribute=optional_env_var("KEYCLOAK_NAME_ATTRIBUTE") or DEFAULT_NAME_ATTRIBUTE,
        token_refresh_seconds=env_float(
            "KEYCLOAK_TOKEN_REFRESH_SECONDS", DEFAULT_TOKEN_REFRESH_SECONDS
        ),
        resilience=ResilienceConfig(
            name="keycloak",
            base_url=normalize_base_url(values["KEYCLOAK_URL"]),
            timeout_seconds=KEYCLOAK_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
