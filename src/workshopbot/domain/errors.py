"""Error taxonomy for remote operations.

Expected absences (unknown directory identity, alias not found) are not
errors: they are modelled as ``None`` and ``NotFound`` results. Everything
below signals that a remote call failed for another reason.
"""

from __future__ import annotations


class RemoteOperationError(RuntimeError):
    """Raised when a call to the homeserver or the directory fails."""


class RoomLookupError(RemoteOperationError):
    """Raised when an alias lookup fails for a reason other than "not found"."""

    def __init__(self, alias: str, reason: str) -> None:
        super().__init__(f"Lookup of {alias} failed: {reason}")
        self.alias = alias
        self.reason = reason


class RoomCreationError(RemoteOperationError):
    """Raised when the homeserver refuses to create a room."""


class RoomStateError(RemoteOperationError):
    """Raised when reading or writing room state fails."""


class InviteError(RemoteOperationError):
    """Raised when an invite is rejected (e.g. the user is already a member)."""


class MessageSendError(RemoteOperationError):
    """Raised when a message cannot be delivered to a room."""


class InvalidSlugError(ValueError):
    """Raised when a workshop slug cannot be turned into a room alias."""
