from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT ... ON CONFLICT DO UPDATE via psycopg2.extras.execute_values.

Used by the bulk policy: conflicting rows are updated, never skipped, so a
re-run with the same conflict keys leaves the row count unchanged.
"""

__all__ = [
    "BatchUpsertError",
    "BatchMetrics",
    "UpsertResult",
    "build_upsert_sql",
    "batch_upsert",
]


class BatchUpsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


@dataclass(frozen=True)
class UpsertResult:
    affected_rows: int
    returned: list[tuple[Any, ...]] = field(default_factory=list)  # RETURNING rows, if requested


def build_upsert_sql(
    table: str,
    columns: Sequence[str],
    conflict_key: str,
    update_columns: Sequence[str] | None = None,
    returning: Sequence[str] | None = None,
) -> str:
    """Build the statement template; ``VALUES %s`` is expanded by execute_values.

    ``update_columns`` defaults to every column except the conflict key.
    ``returning`` appends a RETURNING clause (DO UPDATE returns updated rows too).
    """
    if conflict_key not in columns:
        raise BatchUpsertError(f"conflict key {conflict_key!r} is not an insert column")
    if update_columns is None:
        update_columns = [c for c in columns if c != conflict_key]
    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f'INSERT INTO {table} ({cols_sql}) VALUES %s ON CONFLICT ("{conflict_key}")'
    if update_columns:
        assignments = ",".join(f'"{c}" = EXCLUDED."{c}"' for c in update_columns)
        sql += f" DO UPDATE SET {assignments}"
    else:
        sql += " DO NOTHING"
    if returning:
        sql += " RETURNING " + ",".join(f'"{c}"' for c in returning)
    return sql


def batch_upsert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_key: str,
    update_columns: Sequence[str] | None = None,
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
    returning: Sequence[str] | None = None,
) -> UpsertResult:
    """Upsert ``rows`` into ``table`` keyed on ``conflict_key``.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (trusted identifier)
    columns: insert columns, must include ``conflict_key``
    rows: row value sequences in ``columns`` order
    conflict_key: unique column used for ON CONFLICT
    update_columns: columns overwritten on conflict (default: all but the key)
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics after the call, success or not.
        Not invoked when ``rows`` is empty.
    returning: columns fetched back into ``UpsertResult.returned``
    """
    rows_list = list(rows)
    if not rows_list:
        return UpsertResult(affected_rows=0)

    sql = build_upsert_sql(table, columns, conflict_key, update_columns, returning)

    start_time = time.time()
    try:
        fetched = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=bool(returning))
    except Exception as e:
        raise BatchUpsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return UpsertResult(affected_rows=len(rows_list), returned=list(fetched or []))
