from __future__ import annotations

import json

import pandas as pd
import pytest

from station_import.models.station import RowRejection, StationType
from station_import.services.validator import REASON_COORDINATES, REASON_NAME_ADDRESS
from station_import.tabular.sheet import (
    SheetFormatError,
    detect_provider,
    extract_city,
    parse_coordinates,
    read_sheet_frame,
    read_station_sheet,
    sheet_to_records,
)

ROWS = [
    {
        "Station Name": "Jio-bp Pulse Edappally",
        "Location": "NH 66, Edappally, Kochi, Kerala 682024",
        "Coordinates": "10.0261, 76.3086",
    },
    {
        "Station Name": "HPCL Vadakara",
        "Location": "Main Road, Vadakara, Kerala, India",
        "Coordinates": "11.6, 75.59",
    },
    {"Station Name": "", "Location": "Somewhere", "Coordinates": "10, 76"},
    {"Station Name": "Nayara", "Location": "Kollam Bypass", "Coordinates": "not, numbers"},
]


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Jio-bp Pulse Kakkanad", "JioBP"),
        ("JIOBP Aluva", "JioBP"),
        ("IndianOil COCO", "Indian Oil"),
        ("Bharat Petroleum Pump", "BPCL"),
        ("BPCL Fuel Mart", "BPCL"),
        ("HPCL Retail", "HPCL"),
        ("Nayara Energy", "Unknown"),
    ],
)
def test_detect_provider(name, expected):
    assert detect_provider(name) == expected


@pytest.mark.parametrize(
    "address,expected",
    [
        ("MG Road, Ernakulam, Kerala", "Ernakulam"),
        ("Beach Rd, calicut", "calicut"),
        ("Main Road, Vadakara, Kerala, India", "Vadakara"),
        ("Shop 1, Kerala", "Unknown"),
        ("", "Unknown"),
    ],
)
def test_extract_city(address, expected):
    assert extract_city(address) == expected


def test_parse_coordinates():
    assert parse_coordinates("10.5, 76.25") == (10.5, 76.25)
    assert parse_coordinates("10.5") is None
    assert parse_coordinates("1,2,3") is None
    assert parse_coordinates("abc, 76") is None
    assert parse_coordinates("inf, 76") is None


def test_sheet_to_records_keys_and_rejections():
    records, rejections = sheet_to_records(pd.DataFrame(ROWS), state="Kerala")
    assert [r.external_key for r in records] == ["SHEET_1", "SHEET_2"]
    first = records[0]
    assert first.type is StationType.FUEL
    assert (first.latitude, first.longitude) == (10.0261, 76.3086)
    assert (first.provider, first.city, first.state) == ("JioBP", "Kochi", "Kerala")
    assert records[1].city == "Vadakara"
    assert rejections == [
        RowRejection(3, REASON_NAME_ADDRESS),
        RowRejection(4, REASON_COORDINATES),
    ]


def test_blank_cells_count_as_missing():
    df = pd.DataFrame([{"Station Name": None, "Location": "x", "Coordinates": "1, 2"}])
    records, rejections = sheet_to_records(df)
    assert records == []
    assert rejections[0].reason == REASON_NAME_ADDRESS


def test_read_xlsx(tmp_path):
    path = tmp_path / "stations.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(ROWS[:2]).to_excel(writer, index=False, sheet_name="Stations")
    records, rejections = read_station_sheet(path)
    assert [r.name for r in records] == ["Jio-bp Pulse Edappally", "HPCL Vadakara"]
    assert rejections == []


def test_read_json(tmp_path):
    path = tmp_path / "stations.json"
    path.write_text(json.dumps(ROWS), encoding="utf-8")
    records, rejections = read_station_sheet(path, state="Tamil Nadu")
    assert len(records) == 2
    assert {r.state for r in records} == {"Tamil Nadu"}
    assert len(rejections) == 2


def test_header_whitespace_is_tolerated(tmp_path):
    path = tmp_path / "stations.json"
    path.write_text(
        json.dumps([{" Station Name ": "A", "Location": "B, C, D", "Coordinates": "1, 2"}]),
        encoding="utf-8",
    )
    df = read_sheet_frame(path)
    assert "Station Name" in df.columns


def test_missing_columns(tmp_path):
    path = tmp_path / "stations.json"
    path.write_text(json.dumps([{"Station Name": "A"}]), encoding="utf-8")
    with pytest.raises(SheetFormatError, match="missing columns: Location, Coordinates"):
        read_sheet_frame(path)


def test_unsupported_suffix(tmp_path):
    path = tmp_path / "stations.ods"
    path.write_text("", encoding="utf-8")
    with pytest.raises(SheetFormatError, match="unsupported sheet format"):
        read_sheet_frame(path)


def test_unreadable_file(tmp_path):
    with pytest.raises(SheetFormatError, match="cannot read"):
        read_sheet_frame(tmp_path / "absent.xlsx")
