from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from enum import Enum
from typing import Any

from ..db.store import StationStore
from ..errors import (
    BulkImportError,
    EmptyInputError,
    MissingColumnsError,
    NoValidStationsError,
)
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.import_summary import ImportFailure, ImportOutcome, ImportSuccess, ImportSummary
from ..models.station import RowRejection, StationRecord
from ..tabular.reader import parse_csv, resolve_columns
from .progress import ProgressTracker
from .summary import summarize
from .validator import validate_rows

"""Station import orchestration.

parse -> map columns -> validate -> persist (policy) -> summarize.

Two persistence policies behind one entry point:

- BULK: deterministic external keys, fixed-size batches, each batch upserted
  atomically. The first refused batch aborts the run (BulkImportError).
- INTERACTIVE: one record at a time, station + optional price in one atomic
  scope. A refused record becomes an ImportFailure and the loop moves on.

Fatal errors (empty input, missing columns, no valid rows) are raised before
anything is written.
"""

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_KEY_PREFIX",
    "ImportPolicy",
    "assign_external_keys",
    "import_record",
    "import_interactive",
    "import_bulk",
    "import_records",
    "import_stations",
    "flush_error_log",
]

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_KEY_PREFIX = "CSV"

_FATAL_ERROR_TYPES = {
    EmptyInputError: "STRUCTURE_ERROR",
    MissingColumnsError: "STRUCTURE_ERROR",
    NoValidStationsError: "NO_VALID_ROWS",
}


class ImportPolicy(Enum):
    BULK = "bulk"
    INTERACTIVE = "interactive"


def assign_external_keys(
    records: Iterable[StationRecord], prefix: str = DEFAULT_KEY_PREFIX
) -> list[StationRecord]:
    """Give every record without a key ``{prefix}_{n}``.

    ``n`` is the 1-based data row number (source line - 1), so the same input
    always yields the same keys even when some rows were rejected.
    """
    keyed: list[StationRecord] = []
    for seq, record in enumerate(records, start=1):
        if record.external_key:
            keyed.append(record)
            continue
        n = record.line_number - 1 if record.line_number is not None else seq
        keyed.append(record.with_external_key(f"{prefix}_{n}"))
    return keyed


def import_record(record: StationRecord, store: StationStore) -> ImportOutcome:
    """Persist one station (and its price) all-or-nothing."""
    try:
        with store.atomic():
            station_id = store.insert_station(record)
            if record.price is not None:
                store.insert_price(station_id, record.price)
    except Exception as e:
        return ImportFailure(station=record.name, error=str(e))
    return ImportSuccess(station_id=station_id)


def import_interactive(
    records: Sequence[StationRecord],
    store: StationStore,
    *,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<text>",
) -> list[ImportOutcome]:
    outcomes: list[ImportOutcome] = []
    failed = 0
    with ProgressTracker(len(records), description="Importing", unit="station") as progress:
        for record in records:
            outcome = import_record(record, store)
            if isinstance(outcome, ImportFailure):
                failed += 1
                logger.warning("station=%r insert failed: %s", outcome.station, outcome.error)
                if error_log is not None:
                    error_log.append(
                        ErrorRecord.create(
                            source=source,
                            line=record.line_number if record.line_number is not None else -1,
                            station=record.name,
                            error_type="DATABASE_INSERT_ERROR",
                            message=outcome.error,
                        )
                    )
            else:
                logger.debug("station=%r inserted id=%s", record.name, outcome.station_id)
            outcomes.append(outcome)
            progress.advance(1, ok=len(outcomes) - failed, failed=failed)
    return outcomes


def import_bulk(
    records: Sequence[StationRecord],
    store: StationStore,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<text>",
) -> ImportSummary:
    """Upsert keyed records in batches; raise BulkImportError on the first failure.

    A batch is its stations plus the price rows of those carrying a price,
    written in one atomic scope: a refused price undoes the whole batch.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    unkeyed = [r.name for r in records if not r.external_key]
    if unkeyed:
        raise ValueError(f"bulk import requires external keys; missing for: {', '.join(unkeyed)}")

    batches = [records[i:i + batch_size] for i in range(0, len(records), batch_size)]
    written = 0
    station_ids: list[Any] = []
    with ProgressTracker(len(batches), description="Upserting", unit="batch") as progress:
        for index, batch in enumerate(batches, start=1):
            try:
                with store.atomic():
                    ids = store.upsert_stations(batch)
                    for record, station_id in zip(batch, ids, strict=True):
                        if record.price is not None:
                            store.insert_price(station_id, record.price)
            except Exception as e:
                logger.error("batch %d/%d failed: %s", index, len(batches), e)
                if error_log is not None:
                    error_log.append(
                        ErrorRecord.create(
                            source=source,
                            line=-1,
                            station="",
                            error_type="DATABASE_UPSERT_ERROR",
                            message=f"batch {index}: {e}",
                        )
                    )
                raise BulkImportError(index, str(e)) from e
            written += len(batch)
            station_ids.extend(ids)
            logger.info("Upserted batch %d: %d stations", index, len(batch))
            progress.advance(1, stations=written)

    return ImportSummary(
        total=len(records),
        successful=len(records),
        failed=0,
        errors=[],
        station_ids=station_ids,
    )


def _log_rejections(
    rejected: Sequence[RowRejection], error_log: ErrorLogBuffer | None, source: str
) -> None:
    for rejection in rejected:
        logger.warning(rejection.message)
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    source=source,
                    line=rejection.line_number,
                    station="",
                    error_type="VALIDATION_ERROR",
                    message=rejection.reason,
                )
            )


def import_records(
    records: Sequence[StationRecord],
    store: StationStore,
    policy: ImportPolicy | str = ImportPolicy.INTERACTIVE,
    *,
    rejected: Sequence[RowRejection] = (),
    batch_size: int = DEFAULT_BATCH_SIZE,
    key_prefix: str = DEFAULT_KEY_PREFIX,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<text>",
) -> ImportSummary:
    """Persist already validated records under ``policy``.

    Rejected rows are logged and carried into the summary's ``rejected`` list;
    they are not counted in total/failed.
    """
    policy = ImportPolicy(policy)
    _log_rejections(rejected, error_log, source)
    if not records:
        raise NoValidStationsError()

    logger.info(
        "Importing %d stations policy=%s rejected=%d", len(records), policy.value, len(rejected)
    )
    if policy is ImportPolicy.BULK:
        summary = import_bulk(
            assign_external_keys(records, key_prefix),
            store,
            batch_size=batch_size,
            error_log=error_log,
            source=source,
        )
        return replace(summary, rejected=list(rejected))

    outcomes = import_interactive(records, store, error_log=error_log, source=source)
    return summarize(outcomes, rejected)


def import_stations(
    raw_text: str,
    store: StationStore,
    policy: ImportPolicy | str = ImportPolicy.INTERACTIVE,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    key_prefix: str = DEFAULT_KEY_PREFIX,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<text>",
) -> ImportSummary:
    """Import stations from raw CSV text.

    Args:
        raw_text: Full CSV text; line 1 is the header
        store: Persistence handle (PostgresStationStore, InMemoryStationStore, ...)
        policy: BULK (batched upsert, all-or-error) or INTERACTIVE (per-record)
        batch_size: Records per upsert batch (bulk only)
        key_prefix: External key prefix for CSV rows (bulk only)
        error_log: Optional buffer; flushed before returning or raising
        source: Input label used in the error log

    Returns:
        ImportSummary for the records that reached the store

    Raises:
        EmptyInputError, MissingColumnsError, NoValidStationsError, BulkImportError
    """
    try:
        header, rows = parse_csv(raw_text)
        columns = resolve_columns(header)
        records, rejected = validate_rows(rows, columns)
        return import_records(
            records,
            store,
            policy,
            rejected=rejected,
            batch_size=batch_size,
            key_prefix=key_prefix,
            error_log=error_log,
            source=source,
        )
    except (EmptyInputError, MissingColumnsError, NoValidStationsError) as e:
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    source=source,
                    line=-1,
                    station="",
                    error_type=_FATAL_ERROR_TYPES[type(e)],
                    message=str(e),
                )
            )
        raise
    finally:
        if error_log is not None:
            flush_error_log(error_log)


def flush_error_log(error_log: ErrorLogBuffer) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning("failed writing error log: %s", e)
        return
    if path is not None:
        logger.info("Error log: %s", path)
