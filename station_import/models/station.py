from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

"""Station domain models.

StationRecord is the only thing the importer ever persists. It is built by the
validator (CSV path) or the spreadsheet reader (bulk sheet path) after every
field constraint has passed; there is no partially valid record.
"""

__all__ = [
    "StationType",
    "StationRecord",
    "RowRejection",
]


class StationType(Enum):
    """Closed set of station kinds accepted by the importer."""
    FUEL = "fuel"
    ELECTRIC = "electric"


@dataclass(frozen=True)
class StationRecord:
    """Fully validated station ready for persistence."""
    name: str
    address: str
    latitude: float
    longitude: float
    type: StationType
    price: float | None = None  # Absent when the source cell is empty or unmapped
    line_number: int | None = None  # Source line (CSV) or 1-based sheet row
    external_key: str | None = None  # Conflict key for bulk upserts
    provider: str | None = None  # Spreadsheet source only
    city: str | None = None
    state: str | None = None

    def with_external_key(self, key: str) -> StationRecord:
        return replace(self, external_key=key)


@dataclass(frozen=True)
class RowRejection:
    """A source row the validator refused, with the reason."""
    line_number: int
    reason: str

    @property
    def message(self) -> str:
        return f"Line {self.line_number}: {self.reason}"
