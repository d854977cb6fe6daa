from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.station import StationRecord
from .batch_upsert import BatchMetrics, BatchUpsertError, batch_upsert
from .store import STATION_COLUMNS, StoreError, station_values

"""PostgreSQL StationStore on top of a psycopg2 cursor.

Transaction boundaries belong to the caller (cli._db_connection commits or
rolls back). ``atomic`` only nests a SAVEPOINT so one record or one batch can
be undone without touching the rest of the run.
"""

__all__ = [
    "SCHEMA_SQL",
    "PostgresStationStore",
]

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS stations (
    id SERIAL PRIMARY KEY,
    station_id TEXT UNIQUE,
    name TEXT NOT NULL,
    address TEXT NOT NULL,
    latitude DOUBLE PRECISION NOT NULL,
    longitude DOUBLE PRECISION NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('fuel', 'electric')),
    provider TEXT,
    city TEXT,
    state TEXT
);
CREATE TABLE IF NOT EXISTS prices (
    id SERIAL PRIMARY KEY,
    station_id INTEGER NOT NULL REFERENCES stations(id) ON DELETE CASCADE,
    price NUMERIC NOT NULL
);
"""


class PostgresStationStore:
    def __init__(
        self,
        cursor: Any,
        *,
        stations_table: str = "stations",
        prices_table: str = "prices",
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.cursor = cursor
        self.stations_table = stations_table
        self.prices_table = prices_table
        self.metrics_callback = metrics_callback
        self._savepoint_seq = 0

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        try:
            self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            raise StoreError(str(e).strip()) from e

    def ensure_schema(self) -> None:
        self._execute(SCHEMA_SQL)

    def insert_station(self, record: StationRecord) -> Any:
        cols_sql = ",".join(f'"{c}"' for c in STATION_COLUMNS)
        placeholders = ",".join(["%s"] * len(STATION_COLUMNS))
        self._execute(
            f"INSERT INTO {self.stations_table} ({cols_sql}) VALUES ({placeholders}) RETURNING id",
            station_values(record),
        )
        try:
            row = self.cursor.fetchone()
        except psycopg2.Error as e:
            raise StoreError(f"failed fetching RETURNING id: {e}") from e
        if row is None:
            raise StoreError("insert returned no id")
        return row[0]

    def insert_price(self, station_id: Any, price: float) -> None:
        self._execute(
            f'INSERT INTO {self.prices_table} ("station_id","price") VALUES (%s,%s)',
            (station_id, price),
        )

    def upsert_stations(self, records: Sequence[StationRecord]) -> list[Any]:
        missing_keys = [r.name for r in records if not r.external_key]
        if missing_keys:
            raise StoreError(f"records without external key: {', '.join(missing_keys)}")
        try:
            result = batch_upsert(
                cursor=self.cursor,
                table=self.stations_table,
                columns=STATION_COLUMNS,
                rows=[station_values(r) for r in records],
                conflict_key="station_id",
                metrics_callback=self.metrics_callback,
                returning=("id", "station_id"),
            )
        except BatchUpsertError as e:
            raise StoreError(str(e)) from e
        # RETURNING order is not guaranteed to follow VALUES order
        ids = {key: row_id for row_id, key in result.returned}
        missing = [r.external_key for r in records if r.external_key not in ids]
        if missing:
            raise StoreError(f"upsert returned no id for: {', '.join(missing)}")
        return [ids[r.external_key] for r in records]

    @contextmanager
    def atomic(self) -> Iterator[None]:
        self._savepoint_seq += 1
        name = f"station_import_sp_{self._savepoint_seq}"
        self._execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            try:
                self._execute(f"ROLLBACK TO SAVEPOINT {name}")
            except StoreError:
                # keep the original error; the outer transaction is lost anyway
                logger.error("rollback to savepoint %s failed", name)
            raise
        else:
            self._execute(f"RELEASE SAVEPOINT {name}")
