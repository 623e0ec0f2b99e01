"""Public interface for the Synapse admin adapter."""

from __future__ import annotations

from .client import SynapseAdminClient, SynapseAdminError
from .schema import ExternalId, SynapseUser

__all__ = ["ExternalId", "SynapseAdminClient", "SynapseAdminError", "SynapseUser"]
