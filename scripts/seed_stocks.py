"""Seed the tracked-stock store with a catalogue of NSE symbols.

Every symbol goes through the provider-backed create path, paced per
provider, so seeding the full catalogue takes a few seconds.
"""

import sys

import click

from src.database.db import SessionLocal, init_db
from src.models.stock import SeedEntry
from src.services.stock_sync_service import StockSyncService
from src.utils.config import config
from src.utils.logger import StructuredLogger

logger = StructuredLogger("SeedStocks")

NSE_CATALOGUE = [
    SeedEntry("RELIANCE.NSE", "Reliance Industries Ltd.", "Energy"),
    SeedEntry("TCS.NSE", "Tata Consultancy Services Ltd.", "Technology"),
    SeedEntry("HDFCBANK.NSE", "HDFC Bank Ltd.", "Financial Services"),
    SeedEntry("INFY.NSE", "Infosys Ltd.", "Technology"),
    SeedEntry("HINDUNILVR.NSE", "Hindustan Unilever Ltd.", "Consumer Goods"),
    SeedEntry("ICICIBANK.NSE", "ICICI Bank Ltd.", "Financial Services"),
    SeedEntry("SBIN.NSE", "State Bank of India", "Financial Services"),
    SeedEntry("TATASTEEL.NSE", "Tata Steel Ltd.", "Materials"),
    SeedEntry("AXISBANK.NSE", "Axis Bank Ltd.", "Financial Services"),
    SeedEntry("TATAMOTORS.NSE", "Tata Motors Ltd.", "Automotive"),
]


def select_entries(symbols: tuple[str, ...]) -> list[SeedEntry]:
    """Catalogue entries for ``symbols``; unknown symbols get no overrides."""
    if not symbols:
        return list(NSE_CATALOGUE)
    catalogue = {entry.symbol: entry for entry in NSE_CATALOGUE}
    return [catalogue.get(symbol.strip().upper(), SeedEntry(symbol.strip().upper())) for symbol in symbols]


@click.command()
@click.argument("symbols", nargs=-1)
@click.option(
    "--replace/--keep",
    default=False,
    help="Delete every tracked stock before seeding (default: keep).",
)
def seed(symbols: tuple[str, ...], replace: bool) -> None:
    """Track SYMBOLS, or the built-in NSE catalogue when none are given."""
    try:
        config.validate()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    entries = select_entries(symbols)
    init_db()
    db = SessionLocal()
    try:
        report = StockSyncService(db).seed_stocks(entries, replace_existing=replace)
    finally:
        db.close()

    for symbol in report.succeeded:
        click.echo(f"created  {symbol}")
    for failure in report.failed:
        click.echo(f"failed   {failure.symbol}: {failure.error}", err=True)
    click.echo(f"Seeded {len(report.succeeded)} of {report.total} stocks, {len(report.failed)} failed")
    logger.info("Seeding finished", context=report.to_dict())

    if report.failed:
        sys.exit(1)


if __name__ == "__main__":
    seed()
