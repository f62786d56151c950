"""
Error types shared by the ledger core, the agents and the API layer.
"""


class LedgerError(Exception):
    """Base class for ledger errors."""


class FieldValidationError(LedgerError, ValueError):
    """A rejected input, reported as field name + reason."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(reason)

    def to_dict(self):
        return {"field": self.field, "reason": self.reason}


class EventValidationError(FieldValidationError):
    """Malformed intake event. Never reaches the pending queue."""


class ConfigValidationError(FieldValidationError):
    """Rejected runtime configuration update."""


class EmptyQueueError(LedgerError):
    """A seal was requested with no pending events."""

    def __init__(self, message: str = "No pending events to mine"):
        super().__init__(message)


class SnapshotError(LedgerError):
    """An agent could not produce a complete snapshot of its domain."""
