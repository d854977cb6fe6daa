from __future__ import annotations

from dataclasses import dataclass

from .row_data import RawRow

"""ColumnMap: logical station field -> zero-based column index.

Resolved once from the header row by tabular.reader.resolve_columns.
"""

__all__ = [
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    "ColumnMap",
]

REQUIRED_FIELDS: tuple[str, ...] = ("name", "address", "latitude", "longitude", "type")
OPTIONAL_FIELDS: tuple[str, ...] = ("price",)


@dataclass(frozen=True)
class ColumnMap:
    """Column positions for every required field, plus the optional price column."""
    name: int
    address: int
    latitude: int
    longitude: int
    type: int
    price: int | None = None  # None when the header has no price column

    def index_of(self, field: str) -> int | None:
        return getattr(self, field)

    def value(self, row: RawRow, field: str) -> str:
        """Return the trimmed cell for ``field``; ``""`` if unmapped or the row is short."""
        idx = self.index_of(field)
        if idx is None or idx >= len(row.fields):
            return ""
        return row.fields[idx].strip()
