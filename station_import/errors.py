from __future__ import annotations

"""Fatal pipeline errors.

Anything raised from here aborts the whole import before (or, for the bulk
policy, during) persistence. Per-row validation problems are never raised;
they come back from the validator as RowRejection values.
"""

__all__ = [
    "StationImportError",
    "EmptyInputError",
    "MissingColumnsError",
    "NoValidStationsError",
    "BulkImportError",
]


class StationImportError(Exception):
    """Base exception for fatal import errors."""
    pass


class EmptyInputError(StationImportError):
    """Raised when the input holds no header line."""

    def __init__(self, message: str = "CSV data is required") -> None:
        super().__init__(message)


class MissingColumnsError(StationImportError):
    """Raised when required columns are absent from the header row."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required fields in CSV: {', '.join(self.missing)}")


class NoValidStationsError(StationImportError):
    def __init__(self, message: str = "No valid stations found") -> None:
        super().__init__(message)


class BulkImportError(StationImportError):
    """Raised when a bulk upsert batch is refused; later batches are not attempted."""

    def __init__(self, batch_index: int, cause: str) -> None:
        self.batch_index = batch_index
        self.cause = cause
        super().__init__(f"Error upserting batch {batch_index}: {cause}")
