"""Exception hierarchy for the shortlink service."""

__all__ = [
    "ShortlinkError",
    "MappingValidationError",
    "StoreError",
    "StoreConflictError",
]


class ShortlinkError(Exception):
    """Base class for all errors raised by this package."""


class MappingValidationError(ShortlinkError, ValueError):
    """A mapping request cannot be written as given."""


class StoreError(ShortlinkError):
    """The persistent store failed to execute an operation."""


class StoreConflictError(StoreError):
    """An insert violated the unique constraint on path or short_id."""

    def __init__(self, path: str | None, short_id: str | None = None) -> None:
        self.path = path
        self.short_id = short_id
        super().__init__(f"mapping for path '{path}' conflicts with an existing record")
