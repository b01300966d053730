"""Tests for the catalogue seeding command."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from scripts.seed_stocks import NSE_CATALOGUE, seed, select_entries
from src.models.stock import RefreshFailure, RefreshReport, SeedEntry


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def sync_cls():
    """Patch out the database and the sync service used by the command."""
    with patch("scripts.seed_stocks.init_db"), patch("scripts.seed_stocks.SessionLocal") as session_local, patch(
        "scripts.seed_stocks.StockSyncService"
    ) as cls:
        cls.session = session_local.return_value
        yield cls


def test_catalogue_is_regional_with_overrides():
    assert len(NSE_CATALOGUE) == 10
    assert all(entry.symbol.endswith(".NSE") for entry in NSE_CATALOGUE)
    assert all(entry.name and entry.sector for entry in NSE_CATALOGUE)


def test_select_entries_defaults_to_catalogue():
    assert select_entries(()) == NSE_CATALOGUE


def test_select_entries_reuses_catalogue_overrides():
    entries = select_entries(("tcs.nse", "AAPL"))

    assert entries[0] == SeedEntry("TCS.NSE", "Tata Consultancy Services Ltd.", "Technology")
    assert entries[1] == SeedEntry("AAPL")


def test_seed_reports_counts(runner, sync_cls):
    sync_cls.return_value.seed_stocks.return_value = RefreshReport(succeeded=["TCS.NSE", "INFY.NSE"])

    result = runner.invoke(seed, ["TCS.NSE", "INFY.NSE"])

    assert result.exit_code == 0
    assert "Seeded 2 of 2 stocks, 0 failed" in result.output
    entries = sync_cls.return_value.seed_stocks.call_args.args[0]
    assert [e.symbol for e in entries] == ["TCS.NSE", "INFY.NSE"]
    assert sync_cls.return_value.seed_stocks.call_args.kwargs == {"replace_existing": False}
    sync_cls.session.close.assert_called_once()


def test_seed_replace_flag_and_failures(runner, sync_cls):
    sync_cls.return_value.seed_stocks.return_value = RefreshReport(
        succeeded=["TCS.NSE"],
        failed=[RefreshFailure(symbol="SBIN.NSE", error="upstream unavailable")],
    )

    result = runner.invoke(seed, ["--replace"])

    assert result.exit_code == 1
    assert "SBIN.NSE: upstream unavailable" in result.output
    assert "Seeded 1 of 2 stocks, 1 failed" in result.output
    call = sync_cls.return_value.seed_stocks.call_args
    assert call.args[0] == NSE_CATALOGUE
    assert call.kwargs == {"replace_existing": True}


def test_seed_closes_session_on_error(runner, sync_cls):
    sync_cls.return_value.seed_stocks.side_effect = RuntimeError("db down")

    result = runner.invoke(seed, [])

    assert result.exit_code != 0
    sync_cls.session.close.assert_called_once()


def test_seed_rejects_invalid_config(runner, sync_cls):
    with patch("scripts.seed_stocks.config") as config:
        config.validate.side_effect = ValueError("Invalid time format: 25:00")
        result = runner.invoke(seed, [])

    assert result.exit_code == 1
    assert "Invalid time format" in result.output
    sync_cls.return_value.seed_stocks.assert_not_called()
