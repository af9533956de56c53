"""Exception hierarchy for felt earthquake ingestion."""

from __future__ import annotations


class FeltQuakesError(Exception):
    """Base class for all errors raised by felt_quakes."""


class ValidationError(FeltQuakesError):
    """Raised when the raw feed, or one of its entries, fails validation."""

    def __init__(self, errors: list[str], index: int | None = None):
        self.errors = errors
        self.index = index
        where = f"entry {index}: " if index is not None else ""
        super().__init__(f"Validation failed: {where}{'; '.join(errors)}")


class NormalizationError(FeltQuakesError):
    """Raised when a structurally valid entry violates a value invariant."""


class MergeConfigurationError(FeltQuakesError):
    """Raised when the merge key is unknown or missing from a record."""


class FetchError(FeltQuakesError):
    """Raised when the upstream feed cannot be retrieved."""


class SnapshotError(FeltQuakesError):
    """Raised when the persisted snapshot cannot be read."""
