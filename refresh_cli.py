"""Refresh CLI for the tickets ETL.

Transforms one store's TicketH/TicketD pair and bulk-loads ticketsh,
ticketsd and inventario into the local Postgres instance.

Usage:
    python refresh_cli.py --store 2                      # all three tables
    python refresh_cli.py --store 2 --tables ticketsd    # one table
    python refresh_cli.py --store 2 --dry-run            # staging CSVs only
"""

import argparse
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from config import get_store_id
from errors import TicketsETLError
from logger_config import setup_logger

logger = setup_logger("refresh_cli")

TABLE_CHOICES = ["ticketsh", "ticketsd", "inventario"]


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Tickets ETL — transform and bulk-load one store's CSV pair",
    )
    parser.add_argument("--store", help="Target store id (default: TICKETS_STORE env var)")
    parser.add_argument("--headers", type=Path, help="Sales header CSV (default: TICKETS_HEADERS_CSV)")
    parser.add_argument("--details", type=Path, help="Sales detail CSV (default: TICKETS_DETAILS_CSV)")
    parser.add_argument(
        "--tables",
        nargs="+",
        choices=TABLE_CHOICES,
        default=TABLE_CHOICES,
        help="Tables to load (default: all)",
    )
    parser.add_argument("--seed", type=int, help="Seed for the synthetic inventory levels")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write staging CSVs instead of loading into Postgres",
    )
    parser.add_argument(
        "--allow-duplicate-tickets",
        action="store_true",
        help="Keep the last header row for a repeated ticket id instead of failing",
    )
    args = parser.parse_args(argv)

    logger.info("Tickets ETL Refresh CLI")
    logger.info(f"  Tables: {', '.join(args.tables)}")

    total_start = time.perf_counter()
    success = True

    try:
        store_id = get_store_id(args.store)
        import tickets_to_postgres

        summary = tickets_to_postgres.main(
            store_id,
            headers_path=args.headers,
            details_path=args.details,
            tables=args.tables,
            seed=args.seed,
            on_duplicate="last" if args.allow_duplicate_tickets else "error",
            dry_run=args.dry_run,
        )
        rows = {k: v for k, v in summary.items() if k != "elapsed_s"}
        logger.info("Loaded: " + ", ".join(f"{k}={v}" for k, v in rows.items()))
    except TicketsETLError as e:
        logger.error(f"Refresh failed: {e}")
        success = False

    total_elapsed = time.perf_counter() - total_start

    logger.info("")
    logger.info("=" * 60)
    if success:
        logger.info(f"Refresh completed successfully in {total_elapsed:.1f}s")
    else:
        logger.error(f"Refresh completed with errors in {total_elapsed:.1f}s")
    logger.info("=" * 60)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
