"""Matrix homeserver and bot account configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import ResilienceConfig

MATRIX_TIMEOUT_SECONDS = 10.0


def normalize_base_url(value: str) -> str:
    """Accept bare host names (``matrix.example.org``) as HTTPS URLs."""

    url = value.strip().rstrip("/")
    if "://" not in url:
        url = f"https://{url}"
    return url


@dataclass(frozen=True)
class MatrixConfig:
    """Holds the bot account used against the Matrix client-server API."""

    homeserver_url: str
    user_id: str
    access_token: str | None = None
    password: str | None = None
    device_id: str | None = None

    def __post_init__(self) -> None:
        if not self.user_id.startswith("@") or ":" not in self.user_id:
            raise ConfigurationError(f"MATRIX_USER_ID is not a Matrix user id: {self.user_id}")

    @property
    def resilience(self) -> ResilienceConfig:
        """HTTP settings for client-server calls matrix-nio does not wrap."""

        return ResilienceConfig(
            name="matrix",
            base_url=self.homeserver_url,
            timeout_seconds=MATRIX_TIMEOUT_SECONDS,
        )


def get_matrix_config() -> MatrixConfig:
    values = require_env_vars(("MATRIX_HOMESERVER_URL", "MATRIX_USER_ID"))
    access_token = optional_env_var("MATRIX_ACCESS_TOKEN")
    password = optional_env_var("MATRIX_PASSWORD")
    if access_token is None and password is None:
        raise MissingConfigurationError(
            "Missing configuration for: MATRIX_ACCESS_TOKEN or MATRIX_PASSWORD"
        )
    return MatrixConfig(
        homeserver_url=normalize_base_url(values["MATRIX_HOMESERVER_URL"]),
        user_id=values["MATRIX_USER_ID"],
        access_token=access_token,
        password=password,
        device_id=optional_env_var("MATRIX_DEVICE_ID"),
    )
