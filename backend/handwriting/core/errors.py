# handwriting/core/errors.py
"""
Error taxonomy for the data layer.

Every error carries a stable machine ``code`` and a human readable ``message``,
the same ``{"code", "message"}`` shape the API layer returns to the UI.

Pre-mutation errors (validation, permission, immutability, not found) are raised
synchronously to the direct caller before the replica is touched. SyncError is
only ever delivered through the notice board after a background push failed.
"""


class DataLayerError(Exception):
    """Base class for all data layer errors."""

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(DataLayerError):
    """Malformed input: character outside the allowed set, score out of range, bad credentials format."""


class PermissionDeniedError(DataLayerError):
    """Ownership violation, insufficient role or guest attempting a privileged action."""


class ImmutabilityError(DataLayerError):
    """Core fields of a published public work cannot change."""


class NotFoundError(DataLayerError):
    """Unknown target id or user."""


class PersistenceError(DataLayerError):
    """The persistence service failed or could not be reached."""


class SyncError(DataLayerError):
    """A background push failed and the channel was rolled back."""
