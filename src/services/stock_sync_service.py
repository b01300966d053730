"""Synchronization engine: merges provider quotes and history into tracked stocks."""

import time
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime

from sqlalchemy.orm import Session

from src.database.models import StockRecord
from src.models.stock import (
    HistoricalPoint,
    ProviderKind,
    RefreshFailure,
    RefreshReport,
    SeedEntry,
)
from src.services.errors import DuplicateSymbolError, ProviderError, StockValidationError
from src.services.quote_provider import (
    QuoteProvider,
    get_providers,
    provider_kind_for_symbol,
    select_provider,
)
from src.services.rate_limiter import (
    IntervalPacer,
    PacedQuoteProvider,
    PacingScheduler,
    pacing_scheduler,
)
from src.services.stock_store import DEFAULT_SECTOR, StockStore, normalize_symbol
from src.utils.logger import StructuredLogger
from src.utils.trace_context import traced


def utc_today() -> date:
    return datetime.now(UTC).date()


def _given(value: str | None) -> str | None:
    """Treat blank caller input as absent."""
    if value is None or not value.strip():
        return None
    return value.strip()


class StockSyncService:
    """Creates, refreshes and edits tracked stocks using the routed provider."""

    def __init__(
        self,
        db_session: Session,
        providers: dict[ProviderKind, QuoteProvider] | None = None,
        pacing: PacingScheduler | None = None,
        today: Callable[[], date] = utc_today,
    ):
        """
        Initialize the sync service.

        Args:
            db_session: SQLAlchemy database session
            providers: Provider per kind (defaults to the shared instances)
            pacing: Pacing scheduler for bulk operations (defaults to the shared one)
            today: Current calendar date, used by the history staleness check
        """
        self.store = StockStore(db_session)
        self.providers = providers if providers is not None else get_providers()
        self.pacing = pacing if pacing is not None else pacing_scheduler
        self.today = today
        self.logger = StructuredLogger("StockSyncService")

    def provider_for(self, symbol: str) -> QuoteProvider:
        return select_provider(symbol, self.providers)

    # Read operations

    def list_stocks(self) -> list[StockRecord]:
        """All tracked stocks sorted by symbol."""
        return self.store.find_all(sorted_by_symbol=True)

    def get_stock(self, symbol: str) -> StockRecord:
        """A tracked stock, or StockNotFoundError."""
        return self.store.get(symbol)

    def get_history(self, symbol: str) -> list[HistoricalPoint]:
        """
        Stored history for a symbol, fetched and cached on first request.

        Raises:
            StockNotFoundError: If the symbol is not tracked
            ProviderError: If no history is stored and the fetch fails
        """
        with traced():
            record = self.store.get(symbol)
            points = self.store.get_history(record)
            if points:
                return points

            self.logger.info("No stored history, fetching", context={"symbol": record.symbol})
            fetched = self.provider_for(record.symbol).fetch_history(record.symbol)
            self.store.set_history(record, fetched)
            self.store.save(record)
            return self.store.get_history(record)

    # Write operations

    def create_tracked(
        self, symbol: str, name: str | None = None, sector: str | None = None
    ) -> StockRecord:
        """
        Start tracking a symbol using live provider data.

        Name resolves to the caller's name, then the provider's, then the
        symbol. Sector resolves to the caller's sector, then the provider's,
        then "Unknown". A failed history fetch leaves the new stock with an
        empty series.

        Raises:
            DuplicateSymbolError: If the symbol is already tracked
            ProviderError: If the quote fetch fails; nothing is persisted
        """
        with traced():
            return self._create(symbol, name, sector)

    def _create(
        self,
        symbol: str,
        name: str | None,
        sector: str | None,
        provider: QuoteProvider | PacedQuoteProvider | None = None,
    ) -> StockRecord:
        symbol = normalize_symbol(symbol)
        if self.store.find(symbol) is not None:
            raise DuplicateSymbolError(symbol)

        provider = provider or self.provider_for(symbol)
        try:
            quote = provider.fetch_quote(symbol)
        except ProviderError as e:
            self.logger.error(
                f"Error creating stock {symbol}",
                context={"symbol": symbol, "source": provider.name, "result": "failed"},
                exception=e,
            )
            raise

        record = self.store.create(
            symbol=symbol,
            name=_given(name) or _given(quote.name) or symbol,
            price=quote.price,
            previous_price=quote.previous_price,
            sector=_given(sector) or _given(quote.sector) or DEFAULT_SECTOR,
        )

        try:
            points = provider.fetch_history(symbol)
        except ProviderError as e:
            self.logger.warning(
                f"Error fetching historical data for new stock {symbol}",
                context={"symbol": symbol, "source": provider.name},
                exception=e,
            )
        else:
            self.store.set_history(record, points)
            record = self.store.save(record)

        self.logger.info(
            "Stock created",
            context={"symbol": symbol, "source": provider.name, "price": record.price},
        )
        return record

    def refresh_one(self, symbol: str, use_history_refresh: bool = True) -> StockRecord:
        """
        Refresh the live quote of a tracked stock and, once per day, its history.

        History is fetched only when the newest stored point is not dated
        today. A history failure is logged and the quote update still commits.

        Raises:
            StockNotFoundError: If the symbol is not tracked
            ProviderError: If the quote fetch fails; the record is left unchanged
        """
        with traced():
            return self._refresh(symbol, use_history_refresh)

    def _refresh(
        self,
        symbol: str,
        use_history_refresh: bool = True,
        provider: QuoteProvider | PacedQuoteProvider | None = None,
    ) -> StockRecord:
        record = self.store.get(symbol)
        provider = provider or self.provider_for(record.symbol)
        quote = provider.fetch_quote(record.symbol)

        record.price = quote.price
        record.previous_price = quote.previous_price

        if use_history_refresh and self.history_is_stale(record):
            try:
                self.store.set_history(record, provider.fetch_history(record.symbol))
            except ProviderError as e:
                self.logger.warning(
                    f"Error updating historical data for {record.symbol}",
                    context={"symbol": record.symbol, "source": provider.name},
                    exception=e,
                )

        record = self.store.save(record)
        self.logger.debug(
            "Stock refreshed",
            context={"symbol": record.symbol, "price": record.price, "change": record.change},
        )
        return record

    def history_is_stale(self, record: StockRecord) -> bool:
        """True when the newest stored point is missing or not dated today."""
        points = self.store.get_history(record)
        if not points:
            return True
        newest = max(point.date for point in points)
        return newest != self.today()

    def refresh_all(self) -> RefreshReport:
        """
        Refresh every tracked stock, paced per provider.

        Failures are recorded per symbol and never stop the batch; earlier
        successes stay committed.
        """
        with traced():
            symbols = [record.symbol for record in self.store.find_all(sorted_by_symbol=True)]
            return self._run_paced(
                "refresh",
                symbols,
                lambda symbol, provider: self._refresh(symbol, provider=provider),
            )

    def seed_stocks(
        self, entries: Iterable[SeedEntry], replace_existing: bool = False
    ) -> RefreshReport:
        """
        Track a catalogue of symbols through the provider-backed create path.

        Args:
            entries: Symbols with optional name and sector overrides
            replace_existing: Delete every tracked stock first

        Returns:
            Report of created symbols and per-symbol failures (already tracked
            symbols fail with a duplicate error)
        """
        with traced():
            entries = list(entries)
            if replace_existing:
                self.store.delete_all()

            by_symbol = {entry.symbol: entry for entry in entries}
            return self._run_paced(
                "seed",
                [entry.symbol for entry in entries],
                lambda symbol, provider: self._create(
                    symbol, by_symbol[symbol].name, by_symbol[symbol].sector, provider=provider
                ),
            )

    def _run_paced(
        self,
        operation: str,
        symbols: list[str],
        action: Callable[[str, PacedQuoteProvider], StockRecord],
    ) -> RefreshReport:
        """
        Run ``action`` for every symbol, one provider call at a time per provider.

        Every outbound call goes through the provider's pacer, so a symbol
        needing a quote and a history fetch uses two pacing slots.
        """
        start_time = time.time()
        partitions: dict[ProviderKind, list[str]] = {"global": [], "regional": []}
        for symbol in symbols:
            partitions[provider_kind_for_symbol(symbol)].append(symbol)

        self.logger.info(
            f"Starting bulk stock {operation}",
            context={
                "global_count": len(partitions["global"]),
                "regional_count": len(partitions["regional"]),
            },
        )

        report = RefreshReport()
        for kind, batch in partitions.items():
            if not batch:
                continue

            def work(symbol: str, pacer: IntervalPacer, kind: ProviderKind = kind) -> None:
                provider = PacedQuoteProvider(self.providers[kind], pacer)
                self._record_outcome(operation, symbol, report, lambda: action(symbol, provider))

            self.pacing.for_each_sequential(batch, kind, work)

        self.logger.info(
            f"Bulk stock {operation} complete",
            context={
                "succeeded": len(report.succeeded),
                "failed": len(report.failed),
                "duration_ms": round((time.time() - start_time) * 1000, 1),
            },
        )
        return report

    def _record_outcome(
        self,
        operation: str,
        symbol: str,
        report: RefreshReport,
        step: Callable[[], StockRecord],
    ) -> None:
        try:
            step()
        except Exception as e:
            self.logger.error(
                f"Error during stock {operation} for {symbol}",
                context={"symbol": symbol, "result": "failed"},
                exception=e,
            )
            self.store.discard_changes()
            report.failed.append(RefreshFailure(symbol=symbol, error=str(e)))
        else:
            report.succeeded.append(symbol)

    def update_stock(
        self,
        symbol: str,
        name: str | None = None,
        sector: str | None = None,
        price: float | None = None,
        previous_price: float | None = None,
        use_api_refresh: bool = False,
    ) -> StockRecord:
        """
        Apply administrative edits, then optionally refresh from the provider.

        Edits are committed before the refresh; a refresh failure propagates
        without undoing them.

        Raises:
            StockNotFoundError: If the symbol is not tracked
            StockValidationError: If a supplied name or sector is blank
            ProviderError: If ``use_api_refresh`` is set and the quote fetch fails
        """
        with traced():
            record = self.store.get(symbol)

            if name is not None:
                if not name.strip():
                    raise StockValidationError("name", "Stock name cannot be empty")
                record.name = name.strip()
            if sector is not None:
                if not sector.strip():
                    raise StockValidationError("sector", "Stock sector cannot be empty")
                record.sector = sector.strip()
            if price is not None:
                record.price = price
            if previous_price is not None:
                record.previous_price = previous_price

            record = self.store.save(record)

            if use_api_refresh:
                record = self._refresh(record.symbol)
            return record

    def delete_stock(self, symbol: str) -> None:
        """Stop tracking a symbol, or raise StockNotFoundError."""
        with traced():
            self.store.delete(symbol)
            self.logger.info("Stock deleted", context={"symbol": normalize_symbol(symbol)})
