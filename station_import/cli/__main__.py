from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from station_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from station_import.db.memory_store import InMemoryStationStore
from station_import.db.postgres_store import PostgresStationStore
from station_import.db.store import StationStore, StoreError
from station_import.errors import StationImportError
from station_import.logging.error_log import ErrorLogBuffer
from station_import.logging.init import log_summary, set_debug, setup_logging
from station_import.models.config_models import DatabaseConfig, ImportConfig
from station_import.models.import_summary import BatchStatsAccumulator, ImportSummary
from station_import.services.importer import (
    ImportPolicy,
    flush_error_log,
    import_records,
    import_stations,
)
from station_import.services.summary import render_error_table, render_summary_line
from station_import.tabular.sheet import read_station_sheet

"""CLI entrypoint.

    python -m station_import.cli [options] FILE

- ``.csv`` / ``.txt``: CSV text pipeline under the configured policy
- ``.xlsx`` / ``.json``: station spreadsheet, always the bulk policy

Exit codes: 0 every record persisted, 2 finished with failed records,
1 fatal (config, structure, no valid rows, bulk batch, database).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

SHEET_SUFFIXES = {".xlsx", ".json"}


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the libpq DSN.

    Priority:
        1. DATABASE_URL / PGDSN (environment, including values loaded from .env)
        2. ``database.dsn`` from the config file
        3. discrete PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each
           falling back to the matching ``database`` config value
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:
    """Yield a cursor inside one transaction: commit on success, rollback on error."""
    conn = psycopg2.connect(_resolve_dsn(cfg.database))
    conn.autocommit = False
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="station-import", description="Import fuel / EV charging stations into PostgreSQL"
    )
    p.add_argument("file", help="CSV file, or .xlsx/.json station sheet for bulk loads")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config path")
    p.add_argument(
        "--policy",
        choices=[policy.value for policy in ImportPolicy],
        default=None,
        help="bulk: batched upsert, all-or-error; interactive: per-record with failure report",
    )
    p.add_argument("--batch-size", type=int, default=None, help="Records per upsert batch (bulk)")
    p.add_argument("--dry-run", action="store_true", help="Use an in-memory store; nothing is written")
    p.add_argument("--init-db", action="store_true", help="Create stations/prices tables if absent")
    p.add_argument("--json", action="store_true", help="Print the summary as JSON")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _run_import(
    path: Path,
    store: StationStore,
    policy: ImportPolicy,
    cfg: ImportConfig,
    batch_size: int,
    error_log: ErrorLogBuffer,
) -> ImportSummary:
    if path.suffix.lower() in SHEET_SUFFIXES:
        try:
            records, rejected = read_station_sheet(path, state=cfg.sheet_state)
            return import_records(
                records,
                store,
                ImportPolicy.BULK,
                rejected=rejected,
                batch_size=batch_size,
                error_log=error_log,
                source=path.name,
            )
        finally:
            flush_error_log(error_log)

    raw_text = path.read_text(encoding="utf-8-sig")
    return import_stations(
        raw_text,
        store,
        policy,
        batch_size=batch_size,
        key_prefix=cfg.key_prefix,
        error_log=error_log,
        source=path.name,
    )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] must not fall back to sys.argv (pytest arguments would leak in)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    path = Path(args.file)
    if not path.is_file():
        logger.error(f"file not found: {path}")
        return EXIT_FATAL

    policy = ImportPolicy(args.policy or cfg.policy)
    batch_size = args.batch_size if args.batch_size is not None else cfg.batch_size
    if batch_size < 1:
        logger.error(f"batch size must be >= 1, got {batch_size}")
        return EXIT_FATAL
    if path.suffix.lower() in SHEET_SUFFIXES and policy is not ImportPolicy.BULK:
        logger.info("spreadsheet sources are always loaded with the bulk policy")

    error_log = ErrorLogBuffer(cfg.error_log_dir)
    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    logger.info(f"Importing {path.name} policy={policy.value} mode={'dry-run' if dry_run else 'live'}")

    batch_stats = BatchStatsAccumulator()
    try:
        if dry_run:
            summary = _run_import(path, InMemoryStationStore(), policy, cfg, batch_size, error_log)
        else:
            with _db_connection(cfg) as cur:
                store = PostgresStationStore(
                    cur, metrics_callback=lambda m: batch_stats.add_batch_time(m.elapsed_seconds)
                )
                if args.init_db:
                    store.ensure_schema()
                summary = _run_import(path, store, policy, cfg, batch_size, error_log)
    except StationImportError as e:
        logger.error(f"import: {e}")
        return EXIT_FATAL
    except (StoreError, psycopg2.Error) as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"read: {e}")
        return EXIT_FATAL

    total_batches, avg_batch, p95_batch = batch_stats.get_stats()
    if total_batches:
        logger.debug(f"batches={total_batches} avg_sec={avg_batch:.4f} p95_sec={p95_batch:.4f}")

    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(summary)[len("SUMMARY "):])
    for line in render_error_table(summary):
        print(line)
    if args.json:
        print(json.dumps(summary.to_dict(), ensure_ascii=False))

    if summary.failed > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
