from __future__ import annotations

import pytest

from station_import.models.column_map import ColumnMap
from station_import.models.row_data import RawRow
from station_import.models.station import RowRejection, StationRecord, StationType
from station_import.services.validator import (
    REASON_COORDINATES,
    REASON_NAME_ADDRESS,
    REASON_PRICE,
    REASON_TYPE,
    parse_finite,
    validate_row,
    validate_rows,
)

COLUMNS = ColumnMap(name=0, address=1, latitude=2, longitude=3, type=4, price=5)
NO_PRICE = ColumnMap(name=0, address=1, latitude=2, longitude=3, type=4)


def _row(*fields: str, line: int = 2) -> RawRow:
    return RawRow(line_number=line, fields=list(fields))


def test_valid_row_builds_record():
    rec = validate_row(_row("Shell", "123 Main St", "10.85", "76.27", "FUEL", "95.50"), COLUMNS)
    assert rec == StationRecord(
        name="Shell",
        address="123 Main St",
        latitude=10.85,
        longitude=76.27,
        type=StationType.FUEL,
        price=95.5,
        line_number=2,
    )


def test_empty_price_is_absent_not_zero():
    rec = validate_row(_row("CP", "789 Elm", "10.81", "76.22", "electric", ""), COLUMNS)
    assert isinstance(rec, StationRecord)
    assert rec.price is None


def test_unmapped_price_is_absent():
    rec = validate_row(_row("CP", "789 Elm", "10.81", "76.22", "electric", "12"), NO_PRICE)
    assert isinstance(rec, StationRecord)
    assert rec.price is None


@pytest.mark.parametrize(
    "fields, reason",
    [
        (("", "addr", "1", "2", "fuel"), REASON_NAME_ADDRESS),
        (("n", "   ", "1", "2", "fuel"), REASON_NAME_ADDRESS),
        (("n", "a", "north", "2", "fuel"), REASON_COORDINATES),
        (("n", "a", "1", "", "fuel"), REASON_COORDINATES),
        (("n", "a", "nan", "2", "fuel"), REASON_COORDINATES),
        (("n", "a", "1", "inf", "fuel"), REASON_COORDINATES),
        (("n", "a", "1", "2", "solar"), REASON_TYPE),
        (("n", "a", "1", "2", ""), REASON_TYPE),
        (("n", "a", "1", "2", "fuel", "cheap"), REASON_PRICE),
        (("n", "a", "1", "2", "fuel", "Infinity"), REASON_PRICE),
    ],
)
def test_rejection_reasons(fields, reason):
    result = validate_row(_row(*fields, line=7), COLUMNS)
    assert result == RowRejection(7, reason)


def test_first_failing_rule_wins():
    # missing name and bad type: name/address is checked first
    result = validate_row(_row("", "a", "x", "y", "solar", "z"), COLUMNS)
    assert result.reason == REASON_NAME_ADDRESS


def test_short_row_is_rejected_not_raised():
    assert validate_row(_row(""), COLUMNS) == RowRejection(2, REASON_NAME_ADDRESS)
    assert validate_row(_row("n", "a", "1", "2"), COLUMNS) == RowRejection(2, REASON_TYPE)


def test_type_message_text():
    assert REASON_TYPE == 'Type must be either "fuel" or "electric"'


def test_rejection_message_carries_line_number():
    assert RowRejection(3, REASON_TYPE).message == 'Line 3: Type must be either "fuel" or "electric"'


def test_validate_rows_keeps_order_and_isolates_failures():
    rows = [
        _row("A", "a", "1", "2", "fuel", "", line=2),
        _row("B", "b", "x", "2", "fuel", "", line=3),
        _row("C", "c", "1", "2", "electric", "3", line=4),
        _row("D", "d", "1", "2", "gas", "", line=5),
    ]
    records, rejections = validate_rows(rows, COLUMNS)
    assert [r.name for r in records] == ["A", "C"]
    assert [(r.line_number, r.reason) for r in rejections] == [
        (3, REASON_COORDINATES),
        (5, REASON_TYPE),
    ]


@pytest.mark.parametrize(
    "text, expected",
    [("1.5", 1.5), (" -3 ", -3.0), ("1e3", 1000.0), ("", None), ("abc", None), ("-inf", None)],
)
def test_parse_finite(text, expected):
    assert parse_finite(text) == expected
