"""Synapse admin API configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .env import optional_env_var
from .http_resilience import RateLimit, ResilienceConfig
from .matrix import normalize_base_url

if TYPE_CHECKING:
    from .matrix import MatrixConfig

SYNAPSE_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class SynapseAdminConfig:
    """Admin API access; ``access_token`` falls back to the bot's login token."""

    resilience: ResilienceConfig
    access_token: str | None = None


def get_synapse_admin_config(matrix: MatrixConfig) -> SynapseAdminConfig:
    base_url = optional_env_var("SYNAPSE_ADMIN_URL")
    return SynapseAdminConfig(
        access_token=optional_env_var("SYNAPSE_ADMIN_TOKEN", matrix.access_token),
        resilience=ResilienceConfig(
            name="synapse-admin",
            base_url=normalize_base_url(base_url) if base_url else matrix.homeserver_url,
            timeout_seconds=SYNAPSE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
