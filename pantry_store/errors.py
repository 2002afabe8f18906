"""Exceptions raised by the pantry store."""


class StoreError(Exception):
    """Base class for storage failures."""


class StoreNotInitializedError(StoreError):
    """Raised when an operation runs before initialize() or after close()."""

    def __init__(self) -> None:
        super().__init__("Database not initialized")


class PersistenceError(StoreError):
    """Raised when a write affected no rows where one was expected."""


class MigrationError(StoreError):
    """Raised when DB migration or schema verification fails."""
