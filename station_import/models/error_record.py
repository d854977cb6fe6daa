from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured error log.

One ErrorRecord is one JSON Lines entry. ``line`` is the 1-based source line,
or -1 when the error is not tied to a single row (batch or file level).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Input file name (or "<stdin>" / "<text>")
        line: Source line number (1-based). -1 when not row-specific
        station: Station display name, "" when unknown
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Validation reason or database error message
    """
    timestamp: str
    source: str
    line: int
    station: str
    error_type: str
    message: str

    @staticmethod
    def create(source: str, line: int, station: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            line=line,
            station=station,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # asdict keeps the key set fixed to the dataclass fields
        return json.dumps(asdict(self), ensure_ascii=False)
