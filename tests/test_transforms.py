"""Unit tests for the ticketsh / ticketsd transforms."""

import pytest
import polars as pl
from datetime import date
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import transform_ticketsd
import transform_ticketsh
from config import TICKETSD_COLUMNS, TICKETSH_COLUMNS
from errors import FormatError, ParseError


# =====================================================================
# ticketsh
# =====================================================================

class TestTicketsh:
    def test_filters_to_store_in_order(self, sample_headers_df):
        df = transform_ticketsh.transform(sample_headers_df, 2)
        assert df.columns == TICKETSH_COLUMNS
        assert df["Folio"].to_list() == ["T1", "T3", "T5"]
        assert df["IdTienda"].to_list() == [2, 2, 2]

    def test_dates_normalized(self, sample_headers_df):
        df = transform_ticketsh.transform(sample_headers_df, 2)
        assert df["Fecha"].to_list() == [date(2021, 9, 30), date(2022, 1, 1), date(2022, 6, 10)]

    def test_passthrough_columns(self, sample_headers_df):
        row = transform_ticketsh.transform(sample_headers_df, 2).row(0)
        assert row == ("T1", date(2021, 9, 30), "1", "1", 2, "9")

    def test_non_integer_store_is_fatal(self, make_headers):
        headers = make_headers([
            ("T1", "01/ene/22", "1", "1", "2", "9"),
            ("T2", "01/ene/22", "1", "1", "x", "9"),
        ])
        with pytest.raises(ParseError):
            transform_ticketsh.transform(headers, 2)

    def test_bad_date_on_kept_row_is_fatal(self, make_headers):
        headers = make_headers([("T1", "31/feb/22", "1", "1", "2", "9")])
        with pytest.raises(ParseError):
            transform_ticketsh.transform(headers, 2)

    def test_no_matching_store(self, sample_headers_df):
        assert transform_ticketsh.transform(sample_headers_df, 42).height == 0

    def test_run_reads_csv_when_no_frame(self, source_csvs):
        headers_path, _ = source_csvs
        with patch.object(transform_ticketsh, "HEADERS_CSV", headers_path):
            df = transform_ticketsh.run(2)
        assert df["Folio"].to_list() == ["T1", "T3", "T5"]


# =====================================================================
# ticketsd
# =====================================================================

class TestTicketsd:
    def test_filter_clean_drop_dedup(self, sample_details_df):
        df = transform_ticketsd.transform(sample_details_df, {"T1", "T3", "T5"})
        assert df.columns == TICKETSD_COLUMNS
        assert df.rows() == [
            ("T1", "P1", "3", "10.00"),
            ("T1", "P2", "1", "4.50"),
            ("T3", "P2", "7", "5.00"),
        ]

    def test_first_seen_row_wins_verbatim(self, make_details):
        details = make_details([
            ("T1", "P1", "3", "$ 10.00 ", "x"),
            ("T1", "P1", "5", "$ 12.00 ", "y"),
            ("T1", "P1", "3", "$ 10.00 ", "z"),
        ])
        df = transform_ticketsd.transform(details, {"T1"})
        assert df.rows() == [("T1", "P1", "3", "10.00")]

    def test_dedup_is_idempotent(self, sample_details_df):
        once = transform_ticketsd.transform(sample_details_df, {"T1", "T2", "T3"})
        twice = transform_ticketsd.dedupe_lines(once)
        assert twice.equals(once)

    def test_rerun_on_own_output_drops_nothing(self, make_details, sample_details_df):
        once = transform_ticketsd.transform(sample_details_df, {"T1", "T2", "T3"})
        again = make_details([row + ("",) for row in once.rows()])
        assert transform_ticketsd.transform(again, {"T1", "T2", "T3"}).equals(once)

    def test_bad_price_only_checked_on_kept_rows(self, make_details):
        details = make_details([
            ("T1", "P1", "3", "$ 10.00 ", "x"),
            ("T2", "P1", "3", "garbage", "x"),
        ])
        assert transform_ticketsd.transform(details, {"T1"}).height == 1
        with pytest.raises(FormatError):
            transform_ticketsd.transform(details, {"T1", "T2"})

    def test_bad_price_reports_source_row(self, make_details):
        details = make_details([
            ("T9", "P1", "1", "$ 1.00 ", "x"),
            ("T9", "P2", "1", "$ 2.00 ", "x"),
            ("T1", "P1", "1", "bad", "x"),
        ])
        with pytest.raises(FormatError) as exc:
            transform_ticketsd.transform(details, {"T1"})
        assert exc.value.rows == [(3, "T1", "bad")]

    def test_filter_raises_no_deprecation_warning(self, sample_details_df):
        import warnings

        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            df = transform_ticketsd.transform(sample_details_df, {"T1", "T3"})
        assert df["Ticket"].to_list() == ["T1", "T1", "T3"]

    def test_empty_ticket_set(self, sample_details_df):
        assert transform_ticketsd.transform(sample_details_df, set()).height == 0

    def test_run_derives_tickets_from_headers(self, sample_headers_df, sample_details_df):
        df = transform_ticketsd.run(2, headers_df=sample_headers_df, details_df=sample_details_df)
        assert set(df["Ticket"].to_list()) == {"T1", "T3"}

    def test_run_with_precomputed_tickets(self, sample_details_df):
        df = transform_ticketsd.run(2, details_df=sample_details_df, tickets=["T2"])
        assert df.rows() == [("T2", "P1", "2", "11.00")]


# =====================================================================
# End-to-end scenario (single header, duplicated detail line)
# =====================================================================

def test_end_to_end_scenario(make_headers, make_details):
    import transform_inventario
    import random

    headers = make_headers([("T1", "31/sep/21", "1", "1", "2", "9")])
    details = make_details([
        ("T1", "P1", "3", "$ 10.00 ", "x"),
        ("T1", "P1", "5", "$ 12.00 ", "y"),
    ])

    ticketsh = transform_ticketsh.transform(headers, 2)
    assert ticketsh.row(0)[:2] == ("T1", date(2021, 9, 30))

    ticketsd = transform_ticketsd.run(2, headers_df=headers, details_df=details)
    assert ticketsd.rows() == [("T1", "P1", "3", "10.00")]

    inventario = transform_inventario.run(headers_df=headers, details_df=details, rng=random.Random(0))
    assert inventario.height == 1
    row = inventario.row(0, named=True)
    assert (row["IdSucursal"], row["IdProducto"], row["Precio"]) == (2, "P1", "10.00")
