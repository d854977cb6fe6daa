from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import StationImportError
from ..models.station import RowRejection, StationRecord, StationType
from ..services.validator import REASON_COORDINATES, REASON_NAME_ADDRESS, parse_finite

"""Station spreadsheet reader for the trusted bulk-load path.

The sheet export lists fuel stations with three columns:
``Station Name``, ``Location`` and ``Coordinates`` ("lat, lng").
Each row becomes a fuel StationRecord keyed ``SHEET_{n}`` (n = 1-based row
position) so repeated loads of the same sheet upsert instead of duplicating.
Provider and city are derived from the name and the address.
"""

__all__ = [
    "SHEET_COLUMNS",
    "SheetFormatError",
    "detect_provider",
    "extract_city",
    "parse_coordinates",
    "read_sheet_frame",
    "sheet_to_records",
    "read_station_sheet",
]

SHEET_COLUMNS = ("Station Name", "Location", "Coordinates")
SHEET_KEY_PREFIX = "SHEET"
DEFAULT_STATE = "Kerala"

# Checked in order; first hit wins
_PROVIDERS: list[tuple[tuple[str, ...], str]] = [
    (("jiobp", "jio-bp"), "JioBP"),
    (("indianoil",), "Indian Oil"),
    (("bpcl", "bharat petroleum"), "BPCL"),
    (("hpcl",), "HPCL"),
]

_CITY_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"Kochi|Ernakulam",
        r"Thiruvananthapuram",
        r"Kozhikode|Calicut",
        r"Thrissur",
        r"Kollam",
        r"Kannur",
        r"Palakkad",
        r"Kottayam",
        r"Alappuzha",
        r"Kasaragod",
        r"Malappuram",
        r"Wayanad",
        r"Idukki",
        r"Pathanamthitta",
    )
]


class SheetFormatError(StationImportError):
    """Raised when the sheet cannot be read or lacks the expected columns."""


def detect_provider(name: str) -> str:
    lowered = name.lower()
    for needles, provider in _PROVIDERS:
        if any(n in lowered for n in needles):
            return provider
    return "Unknown"


def extract_city(address: str) -> str:
    """Known city name in the address, else the third-from-last comma part."""
    for pattern in _CITY_PATTERNS:
        match = pattern.search(address)
        if match:
            return match.group(0)
    parts = [p.strip() for p in address.split(",")]
    if len(parts) >= 3 and parts[-3]:
        return parts[-3]
    return "Unknown"


def parse_coordinates(text: str) -> tuple[float, float] | None:
    parts = text.split(",")
    if len(parts) != 2:
        return None
    lat, lng = parse_finite(parts[0].strip()), parse_finite(parts[1].strip())
    if lat is None or lng is None:
        return None
    return lat, lng


def _cell(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def read_sheet_frame(path: Path, sheet_name: str | int = 0) -> pd.DataFrame:
    """Load ``.xlsx`` (first sheet by default) or ``.json`` (list of objects)."""
    suffix = path.suffix.lower()
    try:
        if suffix == ".xlsx":
            df = pd.read_excel(path, sheet_name=sheet_name, dtype=str, keep_default_na=False)
        elif suffix == ".json":
            df = pd.read_json(path, orient="records", dtype=False)
        else:
            raise SheetFormatError(f"unsupported sheet format: {path.name}")
    except (OSError, ValueError) as e:
        raise SheetFormatError(f"cannot read {path.name}: {e}") from e
    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in SHEET_COLUMNS if c not in df.columns]
    if missing:
        raise SheetFormatError(f"sheet {path.name} missing columns: {', '.join(missing)}")
    return df


def sheet_to_records(
    df: pd.DataFrame, state: str = DEFAULT_STATE
) -> tuple[list[StationRecord], list[RowRejection]]:
    records: list[StationRecord] = []
    rejections: list[RowRejection] = []
    for position, raw in enumerate(df[list(SHEET_COLUMNS)].itertuples(index=False), start=1):
        name, address, coordinates = (_cell(v) for v in raw)
        if not name or not address:
            rejections.append(RowRejection(position, REASON_NAME_ADDRESS))
            continue
        coords = parse_coordinates(coordinates)
        if coords is None:
            rejections.append(RowRejection(position, REASON_COORDINATES))
            continue
        records.append(
            StationRecord(
                name=name,
                address=address,
                latitude=coords[0],
                longitude=coords[1],
                type=StationType.FUEL,
                line_number=position,
                external_key=f"{SHEET_KEY_PREFIX}_{position}",
                provider=detect_provider(name),
                city=extract_city(address),
                state=state,
            )
        )
    return records, rejections


def read_station_sheet(
    path: Path, sheet_name: str | int = 0, state: str = DEFAULT_STATE
) -> tuple[list[StationRecord], list[RowRejection]]:
    return sheet_to_records(read_sheet_frame(path, sheet_name), state=state)
