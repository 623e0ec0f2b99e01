"""Public interface for the Matrix adapter."""

from __future__ import annotations

from .account_data import AccountDataError, MatrixAccountDataClient
from .gateway import NioChatGateway
from .router import EventRouter

__all__ = ["AccountDataError", "EventRouter", "MatrixAccountDataClient", "NioChatGateway"]
