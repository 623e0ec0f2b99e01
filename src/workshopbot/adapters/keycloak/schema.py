"""Minimal Pydantic models for the Keycloak token and admin endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class KeycloakBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TokenResponse(KeycloakBaseModel):
    access_token: str
    expires_in: int = 60
    token_type: str = "Bearer"


class KeycloakGroup(KeycloakBaseModel):
    id: str
    name: str
    path: str | None = None
    attributes: dict[str, list[str]] = Field(default_factory=dict)


class KeycloakErrorResponse(KeycloakBaseModel):
    error: str | None = None
    error_description: str | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")

    @property
    def message(self) -> str | None:
        return self.error_description or self.error_message or self.error
