from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from ..models.station import StationRecord
from .store import STATION_COLUMNS, StoreError, station_values

"""Dict-backed StationStore for dry runs and tests.

Mirrors the constraints of the PostgreSQL schema that matter to the importer:
unique non-null station_id, and prices must reference an existing station.
``atomic`` keeps an undo journal per open scope; a failed scope replays it
backwards.
"""

__all__ = [
    "InMemoryStationStore",
]


class InMemoryStationStore:
    def __init__(self) -> None:
        self.stations: dict[int, dict[str, Any]] = {}
        self.prices: list[dict[str, Any]] = []
        self._next_id = 1
        self._ids_by_key: dict[str, int] = {}
        self._undo: list[list[Callable[[], None]]] = []  # one frame per open atomic scope

    def _on_rollback(self, action: Callable[[], None]) -> None:
        if self._undo:
            self._undo[-1].append(action)

    def _add_station(self, values: dict[str, Any]) -> int:
        sid = self._next_id
        self._next_id += 1
        self.stations[sid] = values
        key = values["station_id"]
        if key is not None:
            self._ids_by_key[key] = sid

        def undo() -> None:
            del self.stations[sid]
            if key is not None:
                del self._ids_by_key[key]

        self._on_rollback(undo)
        return sid

    def insert_station(self, record: StationRecord) -> int:
        if record.external_key is not None and record.external_key in self._ids_by_key:
            raise StoreError(
                f'duplicate key value violates unique constraint "stations_station_id_key": '
                f"{record.external_key}"
            )
        return self._add_station(dict(zip(STATION_COLUMNS, station_values(record), strict=True)))

    def insert_price(self, station_id: Any, price: float) -> None:
        if station_id not in self.stations:
            raise StoreError(f"station {station_id} does not exist")
        self.prices.append({"station_id": station_id, "price": price})
        self._on_rollback(self.prices.pop)

    def upsert_stations(self, records: Sequence[StationRecord]) -> list[int]:
        ids: list[int] = []
        for record in records:
            if not record.external_key:
                raise StoreError(f"record without external key: {record.name}")
            values = dict(zip(STATION_COLUMNS, station_values(record), strict=True))
            owner = self._ids_by_key.get(record.external_key)
            if owner is None:
                ids.append(self._add_station(values))
                continue
            previous = self.stations[owner]
            self.stations[owner] = values
            self._on_rollback(lambda sid=owner, row=previous: self.stations.__setitem__(sid, row))
            ids.append(owner)
        return ids

    @contextmanager
    def atomic(self) -> Iterator[None]:
        next_id = self._next_id
        self._undo.append([])
        try:
            yield
        except Exception:
            for action in reversed(self._undo.pop()):
                action()
            self._next_id = next_id
            raise
        frame = self._undo.pop()
        # a released inner scope is still undone if the outer one fails
        if self._undo:
            self._undo[-1].extend(frame)

    def __len__(self) -> int:
        return len(self.stations)
