from __future__ import annotations

import math
from collections.abc import Iterable

from ..models.column_map import ColumnMap
from ..models.row_data import RawRow
from ..models.station import RowRejection, StationRecord, StationType

"""Row validation: RawRow -> StationRecord | RowRejection.

Rules run in a fixed order and the first failure decides the reason. Nothing
here raises for bad data; rejections are returned as values so one row never
blocks another.
"""

__all__ = [
    "REASON_NAME_ADDRESS",
    "REASON_COORDINATES",
    "REASON_TYPE",
    "REASON_PRICE",
    "parse_finite",
    "validate_row",
    "validate_rows",
]

REASON_NAME_ADDRESS = "Name and address are required"
REASON_COORDINATES = "Invalid latitude or longitude"
REASON_TYPE = 'Type must be either "fuel" or "electric"'
REASON_PRICE = "Invalid price value"

_STATION_TYPES = {t.value: t for t in StationType}


def parse_finite(text: str) -> float | None:
    """Parse ``text`` as a finite float, or return None (covers nan/inf)."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def validate_row(row: RawRow, columns: ColumnMap) -> StationRecord | RowRejection:
    name = columns.value(row, "name")
    address = columns.value(row, "address")
    if not name or not address:
        return RowRejection(row.line_number, REASON_NAME_ADDRESS)

    latitude = parse_finite(columns.value(row, "latitude"))
    longitude = parse_finite(columns.value(row, "longitude"))
    if latitude is None or longitude is None:
        return RowRejection(row.line_number, REASON_COORDINATES)

    station_type = _STATION_TYPES.get(columns.value(row, "type").lower())
    if station_type is None:
        return RowRejection(row.line_number, REASON_TYPE)

    price: float | None = None
    raw_price = columns.value(row, "price")
    if raw_price:
        price = parse_finite(raw_price)
        if price is None:
            return RowRejection(row.line_number, REASON_PRICE)

    return StationRecord(
        name=name,
        address=address,
        latitude=latitude,
        longitude=longitude,
        type=station_type,
        price=price,
        line_number=row.line_number,
    )


def validate_rows(
    rows: Iterable[RawRow], columns: ColumnMap
) -> tuple[list[StationRecord], list[RowRejection]]:
    """Validate every row independently, keeping source order in both lists."""
    records: list[StationRecord] = []
    rejections: list[RowRejection] = []
    for row in rows:
        result = validate_row(row, columns)
        if isinstance(result, RowRejection):
            rejections.append(result)
        else:
            records.append(result)
    return records, rejections
