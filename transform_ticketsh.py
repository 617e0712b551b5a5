"""
Ticketsh Transformation Script (Polars)
Store filter + date repair for sales headers
"""

from typing import Optional

import polars as pl

from config import HEADER_COLUMNS, HEADERS_CSV, TICKETSH_COLUMNS
from helpers import polars_normalize_date, polars_store_id, read_source_csv

from logger_config import setup_logger
logger = setup_logger(__name__)


def transform(headers_df: pl.DataFrame, store_id: int) -> pl.DataFrame:
    """
    Restrict raw header rows to one store and normalize their dates.

    Row order is preserved.  A non-integer store id anywhere in the file or
    an un-normalizable date on a kept row raises ParseError.
    """
    df = polars_store_id(headers_df)
    df = df.filter(pl.col("storeId") == store_id)
    df = polars_normalize_date(df, "dateToken")

    return df.select(HEADER_COLUMNS).rename(dict(zip(HEADER_COLUMNS, TICKETSH_COLUMNS)))


# =====================================================================
# MAIN TRANSFORMATION
# =====================================================================

def run(store_id: int, headers_df: Optional[pl.DataFrame] = None) -> pl.DataFrame:
    """
    Run ticketsh transformation.

    Args:
        store_id: target store (resolved by the caller, never read from env here)
        headers_df: raw header rows; loaded from HEADERS_CSV if None

    Returns:
        Load-ready DataFrame with the ticketsh column layout
    """
    logger.info("=" * 70)
    logger.info(f"TICKETSH TRANSFORMATION - STORE {store_id}")
    logger.info("=" * 70)

    if headers_df is None:
        headers_df = read_source_csv(HEADERS_CSV, HEADER_COLUMNS)

    df = transform(headers_df, store_id)

    logger.info(f"  [OK] {df.height:,} of {headers_df.height:,} header rows kept for store {store_id}")
    return df
