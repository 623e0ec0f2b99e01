"""Pydantic models for the Synapse admin API payloads we read."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SynapseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ExternalId(SynapseBaseModel):
    auth_provider: str
    external_id: str


class SynapseUser(SynapseBaseModel):
    name: str
    displayname: str | None = None
    deactivated: bool = False
    external_ids: list[ExternalId] = Field(default_factory=list["ExternalId"])

    def external_id_for(self, auth_provider: str) -> str | None:
        for entry in self.external_ids:
            if entry.auth_provider == auth_provider:
                return entry.external_id
        return None


class SynapseErrorResponse(SynapseBaseModel):
    errcode: str | None = None
    error: str | None = None
