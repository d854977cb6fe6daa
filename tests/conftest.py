# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest

from station_import.db.memory_store import InMemoryStationStore
from station_import.db.store import StoreError
from station_import.models.station import StationRecord

SCENARIO_CSV = """name,address,latitude,longitude,type,price
Shell,123 Main St,10.85,76.27,fuel,95.50
BadType,456 Oak Ave,10.80,76.20,solar,4.25
Charging Point,789 Elm,10.81,76.22,electric,
"""


@pytest.fixture()
def temp_workdir(monkeypatch) -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """policy: interactive
batch_size: 2
key_prefix: CSV
error_log_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: stations
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def scenario_csv() -> str:
    return SCENARIO_CSV


class FlakyStationStore(InMemoryStationStore):
    """In-memory store that refuses chosen stations or prices."""

    def __init__(
        self,
        fail_station_names: set[str] | None = None,
        fail_price_for: set[str] | None = None,
        fail_upsert_call: int | None = None,
    ) -> None:
        super().__init__()
        self.fail_station_names = fail_station_names or set()
        self.fail_price_for = fail_price_for or set()
        self.fail_upsert_call = fail_upsert_call
        self.upsert_calls = 0
        self.atomic_entries = 0

    def insert_station(self, record: StationRecord) -> int:
        if record.name in self.fail_station_names:
            raise StoreError(f"insert rejected for {record.name}")
        return super().insert_station(record)

    def insert_price(self, station_id, price: float) -> None:
        if self.stations[station_id]["name"] in self.fail_price_for:
            raise StoreError("price insert rejected")
        super().insert_price(station_id, price)

    def upsert_stations(self, records) -> list[int]:
        self.upsert_calls += 1
        if self.upsert_calls == self.fail_upsert_call:
            raise StoreError("connection reset")
        return super().upsert_stations(records)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        self.atomic_entries += 1
        with super().atomic():
            yield


@pytest.fixture()
def memory_store() -> InMemoryStationStore:
    return InMemoryStationStore()


@pytest.fixture()
def flaky_store_factory():
    return FlakyStationStore
