from __future__ import annotations

from dataclasses import dataclass

"""RawRow model for the station CSV import.

A RawRow is one parsed, not yet validated source line. Fields carry no meaning
on their own; the ColumnMap resolved from the header gives them one.
"""

__all__ = [
    "RawRow",
]


@dataclass(frozen=True)
class RawRow:
    """Ordered string fields of a single source line.

    The line_number is 1-based over the whole input, so the header is line 1
    and the first data row is line 2.
    """
    line_number: int  # 1-based source line (header = 1)
    fields: list[str]  # Trimmed field values, one per delimited column
