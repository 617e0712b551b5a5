"""Tests for refresh_cli.py and config.get_store_id."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import refresh_cli
from config import get_store_id
from errors import ConfigError, ParseError


class TestGetStoreId:
    def test_explicit_value_wins(self, monkeypatch):
        monkeypatch.setenv("TICKETS_STORE", "5")
        assert get_store_id("2") == 2

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TICKETS_STORE", " 3 ")
        assert get_store_id() == 3

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("TICKETS_STORE", raising=False)
        with pytest.raises(ConfigError):
            get_store_id()

    def test_not_an_integer(self):
        with pytest.raises(ConfigError, match="integer"):
            get_store_id("dos")


def test_cli_success_passes_options(source_csvs):
    headers_path, details_path = source_csvs
    with patch("tickets_to_postgres.main", return_value={"ticketsh": 3, "elapsed_s": 0.0}) as main:
        with pytest.raises(SystemExit) as exc:
            refresh_cli.main([
                "--store", "2",
                "--headers", str(headers_path),
                "--details", str(details_path),
                "--tables", "ticketsh",
                "--seed", "4",
                "--allow-duplicate-tickets",
            ])

    assert exc.value.code == 0
    args, kwargs = main.call_args
    assert args == (2,)
    assert kwargs["tables"] == ["ticketsh"]
    assert kwargs["seed"] == 4
    assert kwargs["on_duplicate"] == "last"
    assert kwargs["dry_run"] is False


def test_cli_exits_1_on_parse_error():
    with patch("tickets_to_postgres.main", side_effect=ParseError("bad date")):
        with pytest.raises(SystemExit) as exc:
            refresh_cli.main(["--store", "2"])
    assert exc.value.code == 1


def test_cli_exits_1_without_store(monkeypatch):
    monkeypatch.delenv("TICKETS_STORE", raising=False)
    with pytest.raises(SystemExit) as exc:
        refresh_cli.main([])
    assert exc.value.code == 1


def test_cli_dry_run_end_to_end(tmp_path, source_csvs):
    import tickets_to_postgres

    headers_path, details_path = source_csvs
    staging = tmp_path / "out"
    with patch.object(tickets_to_postgres, "STAGING_PATH", staging):
        with pytest.raises(SystemExit) as exc:
            refresh_cli.main([
                "--store", "2",
                "--headers", str(headers_path),
                "--details", str(details_path),
                "--dry-run",
                "--seed", "1",
            ])

    assert exc.value.code == 0
    assert sorted(p.name for p in staging.iterdir()) == ["inventario.csv", "ticketsd.csv", "ticketsh.csv"]
    ticketsd = (staging / "ticketsd.csv").read_text(encoding="utf-8").splitlines()
    assert ticketsd == ["Ticket,IdProducto,Unidades,Precio", "T1,P1,3,10.00", "T1,P2,1,4.50", "T3,P2,7,5.00"]
