from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol

from ..models.station import StationRecord

"""Persistence interface consumed by the importer.

The importer never reaches a global client; callers pass a StationStore in.
PostgresStationStore is the production implementation, InMemoryStationStore
backs dry runs and tests.
"""

__all__ = [
    "StoreError",
    "StationStore",
    "STATION_COLUMNS",
    "station_values",
]

# Column order shared by every store implementation for station rows
STATION_COLUMNS: tuple[str, ...] = (
    "station_id",
    "name",
    "address",
    "latitude",
    "longitude",
    "type",
    "provider",
    "city",
    "state",
)


class StoreError(Exception):
    """A write the store refused (constraint violation, connectivity, ...)."""
    pass


class StationStore(Protocol):
    def insert_station(self, record: StationRecord) -> Any:
        """Insert one station and return the generated identifier."""
        ...

    def insert_price(self, station_id: Any, price: float) -> None:
        ...

    def upsert_stations(self, records: Sequence[StationRecord]) -> list[Any]:
        """Upsert keyed by ``external_key``; return the row ids in ``records`` order."""
        ...

    def atomic(self) -> AbstractContextManager[None]:
        """Scope whose writes are all discarded if the block raises."""
        ...


def station_values(record: StationRecord) -> tuple[Any, ...]:
    """Row values for a station in STATION_COLUMNS order."""
    return (
        record.external_key,
        record.name,
        record.address,
        record.latitude,
        record.longitude,
        record.type.value,
        record.provider,
        record.city,
        record.state,
    )
