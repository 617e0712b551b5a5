"""Postgres ETL — Bulk-load transformed ticket tables with COPY.

Reads the raw header/detail CSV pair once, runs the ticketsh, ticketsd and
inventario transforms against the shared frames, and appends each result to
its table with ``COPY ... FROM STDIN`` (psycopg2 ``copy_expert``).

  - Every requested transform runs before the first COPY, so a parse or
    format error aborts the run with nothing loaded.
  - Loads are append-only: no TRUNCATE, no upsert.
  - The row count reported by the server is trusted as-is.
  - --dry-run writes <table>.csv into STAGING_PATH instead of loading.

Usage:
    python tickets_to_postgres.py --store 2
    python tickets_to_postgres.py --store 2 --tables ticketsh ticketsd
"""

import argparse
import io
import random
import sys
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import polars as pl
import psycopg2

import transform_inventario
import transform_ticketsd
import transform_ticketsh
from config import (
    DETAIL_COLUMNS, DETAILS_CSV, HEADER_COLUMNS, HEADERS_CSV,
    INVENTARIO_COLUMNS, LOCAL_DATABASE_URL, STAGING_PATH,
    TICKETSD_COLUMNS, TICKETSH_COLUMNS, get_store_id,
)
from errors import ConfigError, LoadError, TicketsETLError
from helpers import qualifying_tickets, read_source_csv
from logger_config import setup_logger

logger = setup_logger(__name__)

# =====================================================================
# TABLE MAP  (load order matters: headers before details)
# =====================================================================

TABLES: Dict[str, List[str]] = {
    "ticketsh": TICKETSH_COLUMNS,
    "ticketsd": TICKETSD_COLUMNS,
    "inventario": INVENTARIO_COLUMNS,
}

COPY_SQL = "COPY {table} ({columns}) FROM STDIN WITH (FORMAT csv, HEADER true, DELIMITER ',')"


# =====================================================================
# CONNECTION
# =====================================================================


def _connect(url: Optional[str] = None):
    """Open a psycopg2 connection to the local store database."""
    url = url or LOCAL_DATABASE_URL
    if not url:
        raise ConfigError("TICKETS_LOCAL_DATABASE_URL not configured")
    try:
        return psycopg2.connect(url)
    except psycopg2.Error as exc:
        raise LoadError("Could not connect to the local database", exc) from exc


# =====================================================================
# SERIALIZATION + COPY
# =====================================================================


def to_copy_csv(df: pl.DataFrame) -> str:
    """Comma-delimited, newline-terminated text with a header line; dates as YYYY-MM-DD."""
    return df.write_csv(date_format="%Y-%m-%d")


def copy_rows(conn, table: str, df: pl.DataFrame) -> int:
    """Append ``df`` to ``table`` with COPY and return the row count the server reports."""
    if table not in TABLES:
        raise LoadError(f"Unknown table {table!r} (expected one of {', '.join(TABLES)})")

    columns = TABLES[table]
    if df.columns != columns:
        raise LoadError(f"{table}: columns {df.columns} do not match {columns}")

    sql = COPY_SQL.format(table=table, columns=", ".join(columns))
    try:
        with conn.cursor() as cur:
            cur.copy_expert(sql, io.StringIO(to_copy_csv(df)))
            n = cur.rowcount
        conn.commit()
    except psycopg2.Error as exc:
        conn.rollback()
        raise LoadError(f"COPY into {table} failed", exc) from exc
    return n


# =====================================================================
# TRANSFORMS
# =====================================================================


def build_tables(
    store_id: int,
    headers_df: pl.DataFrame,
    details_df: pl.DataFrame,
    tables: Iterable[str] = tuple(TABLES),
    rng: Optional[random.Random] = None,
    on_duplicate: str = "error",
) -> Dict[str, pl.DataFrame]:
    """Run the requested transforms against shared source frames, in TABLES order."""
    wanted = set(tables)
    unknown = wanted - set(TABLES)
    if unknown:
        raise ConfigError(f"Unknown table(s): {', '.join(sorted(unknown))}")

    frames: Dict[str, pl.DataFrame] = {}
    if "ticketsh" in wanted:
        frames["ticketsh"] = transform_ticketsh.run(store_id, headers_df=headers_df)
    if "ticketsd" in wanted:
        tickets = qualifying_tickets(headers_df, store_id)
        frames["ticketsd"] = transform_ticketsd.run(store_id, details_df=details_df, tickets=tickets)
    if "inventario" in wanted:
        frames["inventario"] = transform_inventario.run(
            headers_df=headers_df,
            details_df=details_df,
            rng=rng,
            on_duplicate=on_duplicate,
        )
    return frames


def write_staging(frames: Dict[str, pl.DataFrame], staging_path: Path = STAGING_PATH) -> Dict[str, int]:
    """Dry run: write each frame to <staging_path>/<table>.csv."""
    staging_path = Path(staging_path)
    staging_path.mkdir(parents=True, exist_ok=True)
    counts = {}
    for table, df in frames.items():
        out = staging_path / f"{table}.csv"
        out.write_text(to_copy_csv(df), encoding="utf-8")
        counts[table] = df.height
        logger.info(f"  [OK] {table}: {df.height:,} rows written to {out}")
    return counts


# =====================================================================
# MAIN
# =====================================================================


def main(
    store_id: int,
    headers_path: Optional[Path] = None,
    details_path: Optional[Path] = None,
    tables: Optional[Iterable[str]] = None,
    seed: Optional[int] = None,
    on_duplicate: str = "error",
    dry_run: bool = False,
    database_url: Optional[str] = None,
) -> dict:
    """Transform and load the requested tables for one store.

    Returns a summary dict with row counts per table and elapsed time.
    Raises a TicketsETLError subclass on any failure.
    """
    logger.info("")
    logger.info("=" * 70)
    logger.info(f"POSTGRES ETL - STORE {store_id}{' (DRY RUN)' if dry_run else ''}")
    logger.info("=" * 70)

    start = time.time()
    tables = list(tables) if tables else list(TABLES)

    headers_df = read_source_csv(headers_path or HEADERS_CSV, HEADER_COLUMNS)
    details_df = read_source_csv(details_path or DETAILS_CSV, DETAIL_COLUMNS)

    frames = build_tables(
        store_id,
        headers_df,
        details_df,
        tables=tables,
        rng=random.Random(seed),
        on_duplicate=on_duplicate,
    )

    summary: dict = {}
    if dry_run:
        summary.update(write_staging(frames, STAGING_PATH))
    else:
        conn = _connect(database_url)
        try:
            for table, df in frames.items():
                t0 = time.time()
                n = copy_rows(conn, table, df)
                summary[table] = n
                logger.info(f"  [OK] {table}: {n:,} rows inserted in {time.time() - t0:.1f}s")
        finally:
            conn.close()

    elapsed = time.time() - start
    summary["elapsed_s"] = round(elapsed, 1)

    logger.info("")
    logger.info(f"  Postgres ETL complete in {elapsed:.1f}s")
    logger.info("=" * 70)
    return summary


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Bulk-load ticket tables into Postgres")
    parser.add_argument("--store", help="Target store id (default: TICKETS_STORE)")
    parser.add_argument("--tables", nargs="+", choices=list(TABLES), help="Tables to load (default: all)")
    parser.add_argument("--seed", type=int, help="Seed for the synthetic inventory levels")
    parser.add_argument("--dry-run", action="store_true", help="Write staging CSVs instead of loading")
    args = parser.parse_args()

    try:
        main(get_store_id(args.store), tables=args.tables, seed=args.seed, dry_run=args.dry_run)
    except TicketsETLError as e:
        logger.error(f"Postgres ETL failed: {e}")
        sys.exit(1)
