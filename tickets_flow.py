"""Prefect orchestration flow for the tickets ETL.

Wraps the ticketsh -> ticketsd -> inventario load as a Prefect flow with
task-level visibility.  All three frames are built by a single task before
any COPY runs, so a parse, format or duplicate-ticket error loads nothing.
Tasks never retry: a failed step is fatal and the flow stops there.

Usage:
    python tickets_flow.py --store 2
    python tickets_flow.py --store 2 --seed 7 --allow-duplicate-tickets
"""

import argparse
import random
import sys
import time
from pathlib import Path
from typing import Dict, Optional

sys.path.insert(0, str(Path(__file__).resolve().parent))

import polars as pl
from prefect import flow, task, get_run_logger

from config import DETAIL_COLUMNS, DETAILS_CSV, HEADER_COLUMNS, HEADERS_CSV, get_store_id


# =====================================================================
# TASKS
# =====================================================================


@task(name="validate-source-csvs", retries=0)
def validate_source_csvs(headers_path: str, details_path: str):
    """Fail fast if the header/detail CSVs are missing."""
    log = get_run_logger()
    missing = [p for p in (headers_path, details_path) if not Path(p).exists()]
    if missing:
        raise FileNotFoundError(f"Missing source CSVs: {', '.join(missing)}")
    log.info(f"Validated source CSVs {headers_path}, {details_path}")


@task(name="build-tables", retries=0)
def build_tables(
    store_id: int,
    headers_path: str,
    details_path: str,
    seed: Optional[int] = None,
    on_duplicate: str = "error",
) -> Dict[str, pl.DataFrame]:
    """Read the CSV pair once and run every transform before anything is loaded."""
    log = get_run_logger()
    import tickets_to_postgres
    from helpers import read_source_csv

    headers_df = read_source_csv(headers_path, HEADER_COLUMNS)
    details_df = read_source_csv(details_path, DETAIL_COLUMNS)
    frames = tickets_to_postgres.build_tables(
        store_id,
        headers_df,
        details_df,
        rng=random.Random(seed),
        on_duplicate=on_duplicate,
    )
    log.info("Built " + ", ".join(f"{t}={df.height:,}" for t, df in frames.items()))
    return frames


def _load(table: str, df: pl.DataFrame, database_url: Optional[str] = None) -> int:
    """COPY one pre-built frame into ``table`` on its own connection; returns the server row count."""
    import tickets_to_postgres

    conn = tickets_to_postgres._connect(database_url)
    try:
        return tickets_to_postgres.copy_rows(conn, table, df)
    finally:
        conn.close()


@task(name="load-ticketsh", retries=0)
def load_ticketsh(df: pl.DataFrame, database_url: Optional[str] = None) -> int:
    log = get_run_logger()
    n = _load("ticketsh", df, database_url)
    log.info(f"ticketsh: {n:,} rows inserted")
    return n


@task(name="load-ticketsd", retries=0)
def load_ticketsd(df: pl.DataFrame, database_url: Optional[str] = None) -> int:
    log = get_run_logger()
    n = _load("ticketsd", df, database_url)
    log.info(f"ticketsd: {n:,} rows inserted")
    return n


@task(name="load-inventario", retries=0)
def load_inventario(df: pl.DataFrame, database_url: Optional[str] = None) -> int:
    """Synthetic inventory spans every store in the CSV pair."""
    log = get_run_logger()
    n = _load("inventario", df, database_url)
    log.info(f"inventario: {n:,} rows inserted")
    return n


# =====================================================================
# FLOW
# =====================================================================


@flow(name="tickets-refresh", log_prints=True)
def tickets_refresh(
    store_id: int,
    headers_path: Optional[str] = None,
    details_path: Optional[str] = None,
    seed: Optional[int] = None,
    on_duplicate: str = "error",
    database_url: Optional[str] = None,
):
    """Full tickets refresh for one store: validate -> build -> ticketsh -> ticketsd -> inventario."""
    log = get_run_logger()
    headers_path = str(headers_path or HEADERS_CSV)
    details_path = str(details_path or DETAILS_CSV)

    flow_start = time.time()
    timings: dict[str, float] = {}

    def _run(label: str, fn, *args, **kwargs):
        t0 = time.time()
        result = fn(*args, **kwargs)
        timings[label] = time.time() - t0
        return result

    _run("Validate CSVs", validate_source_csvs, headers_path, details_path)
    frames = _run(
        "Build tables", build_tables, store_id, headers_path, details_path,
        seed=seed, on_duplicate=on_duplicate,
    )
    rows = {
        "ticketsh": _run("ticketsh", load_ticketsh, frames["ticketsh"], database_url),
        "ticketsd": _run("ticketsd", load_ticketsd, frames["ticketsd"], database_url),
        "inventario": _run("inventario", load_inventario, frames["inventario"], database_url),
    }

    total = time.time() - flow_start
    log.info("")
    log.info("=" * 50)
    log.info("PERFORMANCE SUMMARY")
    log.info("=" * 50)
    for label, elapsed in timings.items():
        log.info(f"  {label:<22} {elapsed:>6.1f}s")
    log.info("-" * 50)
    log.info(f"  {'TOTAL':<22} {total:>6.1f}s")
    log.info("=" * 50)
    return rows


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the tickets-refresh Prefect flow")
    parser.add_argument("--store", help="Target store id (default: TICKETS_STORE)")
    parser.add_argument("--seed", type=int, help="Seed for the synthetic inventory levels")
    parser.add_argument(
        "--allow-duplicate-tickets", action="store_true",
        help="Let the last header row win for a repeated ticket id instead of failing",
    )
    args = parser.parse_args()
    tickets_refresh(
        get_store_id(args.store),
        seed=args.seed,
        on_duplicate="last" if args.allow_duplicate_tickets else "error",
    )
