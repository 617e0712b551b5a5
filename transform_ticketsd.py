"""
Ticketsd Transformation Script (Polars)
Ticket filter + price cleanup + (Ticket, IdProducto) dedup for sale lines
"""

from typing import Iterable, Optional

import polars as pl

from config import DETAIL_COLUMNS, DETAILS_CSV, HEADER_COLUMNS, HEADERS_CSV, TICKETSD_COLUMNS
from helpers import polars_parse_price, qualifying_tickets, read_source_csv

from logger_config import setup_logger
logger = setup_logger(__name__)

DEDUP_KEY = ["Ticket", "IdProducto"]


def dedupe_lines(df: pl.DataFrame) -> pl.DataFrame:
    """First row per (Ticket, IdProducto) wins verbatim; order of first occurrence kept."""
    return df.unique(subset=DEDUP_KEY, keep="first", maintain_order=True)


def transform(details_df: pl.DataFrame, tickets: Iterable[str]) -> pl.DataFrame:
    """
    Filter raw detail rows to the qualifying tickets, clean prices,
    drop the unused column and dedup.

    Raises FormatError when any kept row carries a malformed price.
    """
    tickets = list(tickets)
    keep = pl.col("ticketId").is_in(tickets) if tickets else pl.lit(False)
    df = details_df.with_row_index("_src").filter(keep)
    df = polars_parse_price(df, "price", row_col="_src")

    out_cols = [c for c in DETAIL_COLUMNS if c != "extraColumn"]
    df = df.select(out_cols).rename(dict(zip(out_cols, TICKETSD_COLUMNS)))

    return dedupe_lines(df)


# =====================================================================
# MAIN TRANSFORMATION
# =====================================================================

def run(
    store_id: int,
    headers_df: Optional[pl.DataFrame] = None,
    details_df: Optional[pl.DataFrame] = None,
    tickets: Optional[Iterable[str]] = None,
) -> pl.DataFrame:
    """
    Run ticketsd transformation.

    Args:
        store_id: target store
        headers_df: raw header rows; loaded from HEADERS_CSV if None and
            ``tickets`` is not given
        details_df: raw detail rows; loaded from DETAILS_CSV if None
        tickets: pre-computed qualifying ticket set (skips re-deriving it
            from the header file)

    Returns:
        Load-ready DataFrame with the ticketsd column layout
    """
    logger.info("=" * 70)
    logger.info(f"TICKETSD TRANSFORMATION - STORE {store_id}")
    logger.info("=" * 70)

    if tickets is None:
        if headers_df is None:
            headers_df = read_source_csv(HEADERS_CSV, HEADER_COLUMNS)
        tickets = qualifying_tickets(headers_df, store_id)
    tickets = set(tickets)
    logger.info(f"  [OK] {len(tickets):,} qualifying tickets for store {store_id}")

    if details_df is None:
        details_df = read_source_csv(DETAILS_CSV, DETAIL_COLUMNS)

    df = transform(details_df, tickets)

    logger.info(f"  [OK] {df.height:,} of {details_df.height:,} detail rows kept after filter + dedup")
    return df
