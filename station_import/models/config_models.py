from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the station importer.

Built by config.loader from config/import.yml. CLI flags may override the
import settings; environment variables take precedence over ``database``.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback used when PG* / DATABASE_URL are unset."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    policy: str = "interactive"  # bulk | interactive
    batch_size: int = 50  # Records per upsert batch (bulk policy)
    key_prefix: str = "CSV"  # External key prefix for CSV rows (bulk policy)
    error_log_dir: str = "./logs"
    sheet_state: str = "Kerala"  # State recorded for spreadsheet stations
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
