"""Shared fixtures for the tickets ETL test suite."""

import pytest
import polars as pl
from pathlib import Path
from unittest.mock import MagicMock

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import DETAIL_COLUMNS, HEADER_COLUMNS


def _frame(rows, columns) -> pl.DataFrame:
    """All-string frame, the shape read_source_csv produces."""
    return pl.DataFrame(
        [list(r) for r in rows],
        schema={c: pl.Utf8 for c in columns},
        orient="row",
    )


# ── Raw source frames ────────────────────────────────────────────────

@pytest.fixture
def make_headers():
    """Factory: rows of (ticketId, dateToken, stateId, cityId, storeId, employeeId)."""
    return lambda rows: _frame(rows, HEADER_COLUMNS)


@pytest.fixture
def make_details():
    """Factory: rows of (ticketId, productId, units, price, extraColumn)."""
    return lambda rows: _frame(rows, DETAIL_COLUMNS)


@pytest.fixture
def sample_headers_df(make_headers) -> pl.DataFrame:
    """Three stores, mixed Spanish month tokens."""
    return make_headers([
        ("T1", "31/sep/21", "1", "1", "2", "9"),
        ("T2", "15/dic/22", "1", "1", "1", "4"),
        ("T3", "01/ene/22", "3", "7", "2", "9"),
        ("T4", "28/feb/22", "1", "2", "3", "5"),
        ("T5", "10/jun/22", "3", "7", "2", "6"),
    ])


@pytest.fixture
def sample_details_df(make_details) -> pl.DataFrame:
    return make_details([
        ("T1", "P1", "3", "$ 10.00 ", "x"),
        ("T1", "P1", "5", "$ 12.00 ", "y"),
        ("T1", "P2", "1", "$ 4.50 ", "x"),
        ("T2", "P1", "2", "$ 11.00 ", "x"),
        ("T3", "P2", "7", "$ 5.00 ", "z"),
        ("T9", "P3", "1", "$ 1.00 ", "x"),
    ])


# ── CSV files on disk ────────────────────────────────────────────────

@pytest.fixture
def source_csvs(tmp_path, sample_headers_df, sample_details_df):
    """Write the sample frames as TicketH.csv / TicketD.csv with source-style header lines."""
    headers_path = tmp_path / "TicketH.csv"
    details_path = tmp_path / "TicketD.csv"

    sample_headers_df.rename(dict(zip(
        HEADER_COLUMNS, ["Folio", "Fecha", "IdEstado", "IdCiudad", "IdTienda", "IdEmpleado"]
    ))).write_csv(headers_path)
    sample_details_df.rename(dict(zip(
        DETAIL_COLUMNS, ["Ticket", "IdProducto", "Unidades", "Precio", "Extra"]
    ))).write_csv(details_path)

    return headers_path, details_path


# ── psycopg2 stand-ins ───────────────────────────────────────────────

@pytest.fixture
def mock_conn():
    """MagicMock connection whose cursor() works as a context manager."""
    conn = MagicMock(name="conn")
    cursor = MagicMock(name="cursor")
    conn.cursor.return_value.__enter__.return_value = cursor
    conn.cursor.return_value.__exit__.return_value = False
    conn.mock_cursor = cursor
    return conn
