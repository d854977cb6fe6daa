from __future__ import annotations

import logging

from ..errors import EmptyInputError, MissingColumnsError
from ..models.column_map import OPTIONAL_FIELDS, REQUIRED_FIELDS, ColumnMap
from ..models.row_data import RawRow

"""CSV text reader for station imports.

- Line 1 is the header; every following line becomes one RawRow.
- Lines are split strictly on "\\n". Quoted fields may contain the delimiter but
  never span lines.
- Header cells resolve to station fields by case-insensitive exact match.
"""

__all__ = [
    "DELIMITER",
    "QUOTE",
    "parse_line",
    "parse_csv",
    "resolve_columns",
]

logger = logging.getLogger(__name__)

DELIMITER = ","
QUOTE = '"'


def parse_line(line: str) -> list[str]:
    """Split one line into trimmed fields.

    Two states (inside / outside quotes) and one buffer. Quote characters
    toggle the state and are dropped. An unterminated quote is closed
    implicitly at end of line.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == QUOTE:
            in_quotes = not in_quotes
        elif ch == DELIMITER and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    fields.append("".join(current).strip())
    return fields


def _has_unterminated_quote(line: str) -> bool:
    return line.count(QUOTE) % 2 == 1


def parse_csv(text: str) -> tuple[RawRow, list[RawRow]]:
    """Parse raw CSV text into the header row and the data rows.

    Raises
    ------
    EmptyInputError
        If the text is empty or whitespace only.
    """
    if text is None or not text.strip():
        raise EmptyInputError()
    lines = text.strip().split("\n")

    header = RawRow(line_number=1, fields=parse_line(lines[0]))
    rows: list[RawRow] = []
    for offset, line in enumerate(lines[1:]):
        line_number = offset + 2
        if _has_unterminated_quote(line):
            logger.warning("line %d: unterminated quote closed at end of line", line_number)
        rows.append(RawRow(line_number=line_number, fields=parse_line(line)))
    logger.debug("parsed header=%s data_rows=%d", header.fields, len(rows))
    return header, rows


def resolve_columns(header: RawRow) -> ColumnMap:
    """Resolve station fields to column indices from the header row.

    Every missing required field is reported at once, in schema order.
    """
    lowered = [cell.strip().lower() for cell in header.fields]

    def find(field: str) -> int | None:
        try:
            return lowered.index(field)
        except ValueError:
            return None

    indices = {f: find(f) for f in REQUIRED_FIELDS + OPTIONAL_FIELDS}
    missing = [f for f in REQUIRED_FIELDS if indices[f] is None]
    if missing:
        raise MissingColumnsError(missing)
    return ColumnMap(**indices)  # type: ignore[arg-type]
