"""Domain models for the station CSV import pipeline.

RawRow -> (ColumnMap) -> StationRecord | RowRejection -> ImportOutcome -> ImportSummary
"""

from .column_map import OPTIONAL_FIELDS, REQUIRED_FIELDS, ColumnMap
from .error_record import ErrorRecord
from .import_summary import ImportFailure, ImportOutcome, ImportSuccess, ImportSummary
from .row_data import RawRow
from .station import RowRejection, StationRecord, StationType

__all__ = [
    # Parsing / mapping
    "RawRow",
    "ColumnMap",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    # Validation
    "StationRecord",
    "StationType",
    "RowRejection",
    # Import results
    "ImportSuccess",
    "ImportFailure",
    "ImportOutcome",
    "ImportSummary",
    "ErrorRecord",
]
