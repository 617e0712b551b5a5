"""
Inventario Transformation Script (Polars)
Synthetic per-store inventory snapshot derived from the full sales history

Spans every store at once:
  1. ticket index      ticketId -> (storeId, sale date) from all header rows
  2. candidates        detail lines hash-joined to the index by ticketId
  3. merge             one row per (storeId, productId), latest sale wins
  4. synthesis         random stock / min / max, price from the winning sale
"""

import random
from typing import Optional

import polars as pl

from config import (
    DETAIL_COLUMNS, DETAILS_CSV, HEADER_COLUMNS, HEADERS_CSV,
    MAX_STOCK_RANGE, MIN_STOCK_RANGE, STOCK_RANGE,
)
from errors import DuplicateTicketError
from helpers import polars_normalize_date, polars_parse_price, polars_store_id, read_source_csv

from logger_config import setup_logger
logger = setup_logger(__name__)

DUPLICATE_POLICIES = ("error", "last")
INVENTORY_KEY = ["storeId", "productId"]


# =====================================================================
# TICKET INDEX
# =====================================================================

def build_ticket_index(headers_df: pl.DataFrame, on_duplicate: str = "error") -> pl.DataFrame:
    """
    ticketId -> (storeId, saleDate) for every header row.

    on_duplicate:
        "error": a ticketId seen on more than one header row raises DuplicateTicketError
        "last":  the last header row for a ticketId silently wins
    """
    if on_duplicate not in DUPLICATE_POLICIES:
        raise ValueError(f"on_duplicate must be one of {DUPLICATE_POLICIES}, got {on_duplicate!r}")

    df = polars_store_id(headers_df.select(["ticketId", "dateToken", "storeId"]))
    df = polars_normalize_date(df, "dateToken", alias="saleDate")

    dupes = df.filter(pl.col("ticketId").is_duplicated())["ticketId"].unique(maintain_order=True)
    if dupes.len() > 0:
        if on_duplicate == "error":
            raise DuplicateTicketError(
                f"{dupes.len():,} ticket id(s) appear on more than one header row",
                column="ticketId",
                values=dupes.head(5).to_list(),
            )
        logger.warning(f"  [WARN] {dupes.len():,} repeated ticket id(s) - keeping the last header row")
        df = df.unique(subset="ticketId", keep="last", maintain_order=True)

    return df.select(["ticketId", "storeId", "saleDate"])


# =====================================================================
# CANDIDATES + MERGE
# =====================================================================

def collect_candidates(details_df: pl.DataFrame, index: pl.DataFrame) -> pl.DataFrame:
    """Join detail lines to the ticket index; lines with unknown tickets drop out."""
    return (
        details_df.select(["ticketId", "productId", "price"])
        .with_row_index("_seq")
        .join(index, on="ticketId", how="inner")
        .sort("_seq")
    )


def merge_latest(candidates: pl.DataFrame) -> pl.DataFrame:
    """One row per (storeId, productId): strictly later saleDate wins, ties keep the first seen."""
    return (
        candidates.sort(["saleDate", "_seq"], descending=[True, False])
        .unique(subset=INVENTORY_KEY, keep="first", maintain_order=True)
        .sort("_seq")
    )


# =====================================================================
# SYNTHESIS
# =====================================================================

def synthesize(merged: pl.DataFrame, rng: random.Random) -> pl.DataFrame:
    """Attach random stock levels and the winning sale's numeric price."""
    merged = polars_parse_price(merged, "price", row_col="_seq")

    stock, minimum, maximum = [], [], []
    for _ in range(merged.height):
        stock.append(rng.randint(*STOCK_RANGE))
        minimum.append(rng.randint(*MIN_STOCK_RANGE))
        maximum.append(rng.randint(*MAX_STOCK_RANGE))

    return merged.with_columns([
        pl.Series("Existencia", stock, dtype=pl.Int64),
        pl.Series("Minimo", minimum, dtype=pl.Int64),
        pl.Series("Maximo", maximum, dtype=pl.Int64),
    ]).select([
        pl.col("storeId").alias("IdSucursal"),
        pl.col("productId").alias("IdProducto"),
        "Existencia",
        "Minimo",
        "Maximo",
        pl.col("price").alias("Precio"),
    ])


# =====================================================================
# MAIN TRANSFORMATION
# =====================================================================

def run(
    headers_df: Optional[pl.DataFrame] = None,
    details_df: Optional[pl.DataFrame] = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    on_duplicate: str = "error",
) -> pl.DataFrame:
    """
    Run inventario transformation.

    Args:
        headers_df: raw header rows (all stores); loaded from HEADERS_CSV if None
        details_df: raw detail rows (all stores); loaded from DETAILS_CSV if None
        rng: random source for stock levels; built from ``seed`` if None
        seed: seed for a fresh random.Random (None = non-reproducible)
        on_duplicate: repeated header ticketId policy, "error" or "last"

    Returns:
        Load-ready DataFrame with the inventario column layout
    """
    logger.info("=" * 70)
    logger.info("INVENTARIO TRANSFORMATION - ALL STORES")
    logger.info("=" * 70)

    if headers_df is None:
        headers_df = read_source_csv(HEADERS_CSV, HEADER_COLUMNS)
    if details_df is None:
        details_df = read_source_csv(DETAILS_CSV, DETAIL_COLUMNS)
    if rng is None:
        rng = random.Random(seed)

    index = build_ticket_index(headers_df, on_duplicate=on_duplicate)
    logger.info(f"  [OK] Indexed {index.height:,} tickets")

    candidates = collect_candidates(details_df, index)
    skipped = details_df.height - candidates.height
    if skipped:
        logger.info(f"  [OK] {skipped:,} detail rows without a header ticket skipped")

    merged = merge_latest(candidates)
    df = synthesize(merged, rng)

    logger.info(f"  [OK] {df.height:,} inventory rows from {candidates.height:,} candidate lines")
    return df
