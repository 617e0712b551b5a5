"""
Helper Functions for the Tickets ETL Pipeline (Polars)

Shared utility functions used across the ticketsh / ticketsd / inventario
transforms.  All row-level cleaning is expressed as Polars expressions;
every helper validates the whole column and raises instead of letting a
malformed value through.
"""

from datetime import date
from pathlib import Path
from typing import List, Optional, Set, Union

import polars as pl

from config import CENTURY, ENGLISH_MONTHS, SOURCE_MONTHS, THIRTY_DAY_MONTHS
from errors import FormatError, LoadError, ParseError

from logger_config import setup_logger
logger = setup_logger(__name__)

# DD/Mon/YY, month field letters only
DATE_TOKEN_PATTERN = r"^\s*(\d{1,2})/([A-Za-z]{3})/(\d{2})\s*$"

# Optional "$", plain decimal, optional 3-letter currency code (e.g. MXN)
PRICE_PATTERN = r"^\s*\$?\s*(\d+(?:\.\d+)?)\s*(?:[A-Za-z]{3})?\s*$"

# Shared keys (feb, mar, ...) map to the same month number in both tables
_MONTH_LOOKUP = {k: str(v) for k, v in {**ENGLISH_MONTHS, **SOURCE_MONTHS}.items()}

_MAX_REPORTED = 5


# =====================================================================
# SOURCE FILES
# =====================================================================

def read_source_csv(path: Union[str, Path], columns: List[str]) -> pl.DataFrame:
    """
    Read a positional source CSV with every field as a string.

    The file's own header line is skipped and its columns are renamed, in
    order, to ``columns``.  Raises LoadError when the file is missing,
    unreadable, or does not have exactly ``len(columns)`` columns.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Source file not found: {path}")

    try:
        df = pl.read_csv(path, infer_schema_length=0)
    except (OSError, pl.exceptions.PolarsError) as exc:
        raise LoadError(f"Could not read source file {path}", exc) from exc

    if df.width != len(columns):
        raise LoadError(
            f"{path.name}: expected {len(columns)} columns "
            f"({', '.join(columns)}), found {df.width}"
        )

    df = df.rename(dict(zip(df.columns, columns)))
    logger.info(f"  [OK] Loaded {df.height:,} rows from {path.name}")
    return df


# =====================================================================
# DATE NORMALIZATION
# =====================================================================

def polars_date_expr(col: str) -> pl.Expr:
    """
    Vectorized DD/Mon/YY -> Date.

    Day, month and year are split structurally, so the month lookup only
    ever sees the month field.  Day 31 in a 30-day month becomes 30; any
    other impossible date comes out null.
    """
    raw = pl.col(col).cast(pl.Utf8)

    day = raw.str.extract(DATE_TOKEN_PATTERN, 1).cast(pl.Int64, strict=False)
    month = (
        raw.str.extract(DATE_TOKEN_PATTERN, 2)
        .str.to_lowercase()
        .replace(_MONTH_LOOKUP)
        .cast(pl.Int64, strict=False)
    )
    year = raw.str.extract(DATE_TOKEN_PATTERN, 3).cast(pl.Int64, strict=False) + CENTURY

    day = (
        pl.when((day == 31) & month.is_in(list(THIRTY_DAY_MONTHS)))
        .then(pl.lit(30, dtype=pl.Int64))
        .otherwise(day)
    )

    iso = pl.format(
        "{}-{}-{}",
        year.cast(pl.Utf8),
        month.cast(pl.Utf8).str.zfill(2),
        day.cast(pl.Utf8).str.zfill(2),
    )
    return iso.str.to_date("%Y-%m-%d", strict=False)


def polars_normalize_date(df: pl.DataFrame, col: str, alias: Optional[str] = None) -> pl.DataFrame:
    """
    Replace (or alias) a DD/Mon/YY token column with a pl.Date column.

    Every value must normalize to a real calendar date; otherwise the whole
    run fails with ParseError naming the first offending tokens.
    """
    out_name = alias or col

    parsed = df.with_columns(polars_date_expr(col).alias("_parsed_date"))
    bad = parsed.filter(pl.col("_parsed_date").is_null())

    if bad.height > 0:
        values = bad[col].head(_MAX_REPORTED).to_list()
        logger.error(
            f"  [FAIL] {bad.height:,}/{df.height:,} date token(s) in [{col}] "
            f"could not be normalized: {values}"
        )
        raise ParseError(
            f"{bad.height:,} date token(s) could not be normalized",
            column=col,
            values=values,
        )

    return parsed.with_columns(pl.col("_parsed_date").alias(out_name)).drop("_parsed_date")


def normalize_date(token: Optional[str]) -> date:
    """Normalize a single DD/Mon/YY token, e.g. '31/sep/21' -> date(2021, 9, 30)."""
    df = pl.DataFrame({"token": [token]}, schema={"token": pl.Utf8})
    return polars_normalize_date(df, "token")["token"][0]


# =====================================================================
# STORE IDENTIFIERS
# =====================================================================

def polars_store_id(df: pl.DataFrame, col: str = "storeId") -> pl.DataFrame:
    """Integer-parse the store column in place; any unparseable value raises ParseError."""
    parsed = df.with_columns(
        pl.col(col).cast(pl.Utf8).str.strip_chars().cast(pl.Int64, strict=False).alias("_store")
    )
    bad = parsed.filter(pl.col("_store").is_null())

    if bad.height > 0:
        values = bad[col].head(_MAX_REPORTED).to_list()
        logger.error(f"  [FAIL] {bad.height:,} non-integer store id(s) in [{col}]: {values}")
        raise ParseError(
            f"{bad.height:,} store identifier(s) are not integers",
            column=col,
            values=values,
        )

    return parsed.with_columns(pl.col("_store").alias(col)).drop("_store")


def qualifying_tickets(headers_df: pl.DataFrame, store_id: int) -> Set[str]:
    """Ticket ids whose header row belongs to ``store_id`` (dates are not parsed)."""
    stores = polars_store_id(headers_df.select(["ticketId", "storeId"]))
    tickets = stores.filter(pl.col("storeId") == store_id)["ticketId"].to_list()
    return set(tickets)


# =====================================================================
# PRICE NORMALIZATION
# =====================================================================

def polars_parse_price(
    df: pl.DataFrame,
    col: str = "price",
    ticket_col: str = "ticketId",
    alias: Optional[str] = None,
    row_col: Optional[str] = None,
) -> pl.DataFrame:
    """
    Validate currency-formatted prices and strip them to plain numbers.

    '$ 10.00 ' -> '10.00', '12.50 MXN' -> '12.50'.  Each row that does not
    match is logged, then a single FormatError listing all of them is raised.

    ``row_col`` names a zero-based source row index carried through the
    caller's filters/joins; without it rows are numbered by position in ``df``.
    """
    out_name = alias or col

    parsed = df.with_columns(
        pl.col(col).cast(pl.Utf8).str.extract(PRICE_PATTERN, 1).alias("_price")
    )
    checked = parsed if row_col else parsed.with_row_index("_row")
    row_col = row_col or "_row"
    bad = checked.filter(pl.col("_price").is_null())

    if bad.height > 0:
        rows = []
        for r in bad.iter_rows(named=True):
            entry = (r[row_col] + 1, r.get(ticket_col), r[col])
            logger.warning(f"  [WARN] Bad price in row {entry[0]} (ticket {entry[1]}): {entry[2]!r}")
            rows.append(entry)
        raise FormatError(
            f"{len(rows):,} price value(s) do not match the currency format",
            column=col,
            rows=rows,
        )

    return parsed.with_columns(pl.col("_price").alias(out_name)).drop("_price")
