"""Application configuration helpers."""

from __future__ import annotations

from .bot import BotConfig, get_bot_config, get_message_templates
from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .keycloak import KeycloakConfig, get_keycloak_config
from .logging import configure_logging
from .matrix import MatrixConfig, get_matrix_config
from .synapse import SynapseAdminConfig, get_synapse_admin_config

__all__ = [
    "BotConfig",
    "ConfigurationError",
    "KeycloakConfig",
    "MatrixConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SynapseAdminConfig",
    "configure_logging",
    "get_bot_config",
    "get_keycloak_config",
    "get_matrix_config",
    "get_message_templates",
    "get_synapse_admin_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
