from __future__ import annotations

import json
import re

from station_import.models.error_record import ErrorRecord

"""Error log JSON Lines contract: fixed key set, UTC timestamp, -1 for non-row errors."""

EXPECTED_KEYS = {"timestamp", "source", "line", "station", "error_type", "message"}
ERROR_TYPE_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")


def test_error_record_schema():
    rec = ErrorRecord.create("stations.csv", 4, "Shell", "DATABASE_INSERT_ERROR", "duplicate key")
    data = json.loads(rec.to_json_line())
    assert set(data.keys()) == EXPECTED_KEYS
    assert data["timestamp"].endswith("Z")
    assert ERROR_TYPE_PATTERN.match(data["error_type"])


def test_batch_level_record_uses_minus_one():
    rec = ErrorRecord.create("stations.csv", -1, "", "DATABASE_UPSERT_ERROR", "batch 2: reset")
    assert json.loads(rec.to_json_line())["line"] == -1


def test_non_ascii_is_kept_verbatim():
    rec = ErrorRecord.create("kerala.csv", 2, "പമ്പ്", "VALIDATION_ERROR", "Invalid price value")
    assert "പമ്പ്" in rec.to_json_line()
