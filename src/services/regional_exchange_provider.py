"""Regional exchange source backed by the NSE India public API."""

from datetime import UTC, datetime, timedelta, timezone
from typing import Any

import requests

from src.models.stock import HistoricalPoint, NormalizedQuote
from src.services.derived_fields import derive_history
from src.services.errors import ProviderError
from src.services.quote_provider import QuoteProvider, strip_regional_suffix
from src.utils.config import config

# The exchange rejects requests that do not look like they come from a browser
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Referer": "https://www.nseindia.com/get-quotes/equity",
}

# Approximate open/high/low as fixed offsets from the close; the chart
# endpoint only reports closing prices.
ESTIMATED_OPEN_FACTOR = 0.99
ESTIMATED_HIGH_FACTOR = 1.01
ESTIMATED_LOW_FACTOR = 0.98

# India Standard Time has no daylight saving, so a fixed offset is exact
EXCHANGE_TZ = timezone(timedelta(hours=5, minutes=30), "IST")


class RegionalExchangeProvider(QuoteProvider):
    """Parses NSE quote-equity and chart-databyindex documents."""

    name = "NSE India"
    kind = "regional"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        history_window: int | None = None,
    ):
        super().__init__(timeout=timeout, history_window=history_window)
        self.base_url = (base_url or config.api.nse_base_url).rstrip("/")

    def _new_session(self) -> requests.Session:
        session = super()._new_session()
        session.headers.update(BROWSER_HEADERS)
        return session

    def _section(self, data: dict, key: str, symbol: str) -> dict[str, Any]:
        """An optional nested object; absent is empty, any other shape is an error."""
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ProviderError(symbol, self.name, f"malformed '{key}' section: {value!r}")
        return value

    def fetch_quote(self, symbol: str) -> NormalizedQuote:
        """
        Fetch the current quote for a regional symbol.

        Args:
            symbol: Symbol with or without the ``.NSE``/``.NS`` suffix

        Returns:
            NormalizedQuote keyed by the caller's symbol, carrying the
            exchange's company name and industry
        """
        symbol = symbol.strip().upper()
        ticker = strip_regional_suffix(symbol)
        self.logger.info(
            "Starting stock quote fetch",
            context={"source": self.name, "symbol": symbol, "type": "quote"},
        )

        data = self._get_json(f"{self.base_url}/quote-equity", symbol, params={"symbol": ticker})
        price_info = data.get("priceInfo") if isinstance(data, dict) else None
        if not isinstance(price_info, dict):
            raise ProviderError(symbol, self.name, "Invalid response: no 'priceInfo' data")

        info = self._section(data, "info", symbol)
        industry = self._section(data, "metadata", symbol).get("industry")

        result = NormalizedQuote(
            symbol=symbol if symbol != ticker else f"{ticker}.NSE",
            name=str(info.get("companyName") or ""),
            price=self._number(price_info, "lastPrice", symbol),
            previous_price=self._number(price_info, "previousClose", symbol),
            change=self._number(price_info, "change", symbol),
            change_percent=self._number(price_info, "pChange", symbol),
            sector=industry if isinstance(industry, str) and industry.strip() else None,
            timestamp=datetime.now(UTC),
        )

        self.logger.info(
            "Successfully fetched stock quote",
            context={
                "source": self.name,
                "symbol": symbol,
                "result": "success",
                "price": result.price,
                "previous_price": result.previous_price,
            },
        )
        return result

    def fetch_history(self, symbol: str) -> list[HistoricalPoint]:
        """
        Fetch the trailing daily series for a regional symbol.

        The chart endpoint returns ``[epoch_ms, close]`` pairs, possibly several
        per day; the last pair of each trading day in exchange-local time
        (IST) is taken as that day's close. Open/high/low are estimated from the close and marked
        ``estimated``; volume is not reported and is stored as 0.
        """
        symbol = symbol.strip().upper()
        ticker = strip_regional_suffix(symbol)
        data = self._get_json(
            f"{self.base_url}/chart-databyindex",
            symbol,
            params={"index": ticker, "indices": "false"},
        )

        graph = data.get("grapthData") if isinstance(data, dict) else None
        if not isinstance(graph, list) or not graph:
            raise ProviderError(symbol, self.name, "Invalid response: no 'grapthData' series")

        closes = {}
        for entry in graph:
            if not isinstance(entry, (list, tuple)) or len(entry) < 2:
                raise ProviderError(symbol, self.name, f"malformed chart entry: {entry!r}")
            try:
                day = datetime.fromtimestamp(float(entry[0]) / 1000, tz=EXCHANGE_TZ).date()
                close = float(entry[1])
            except (TypeError, ValueError, OverflowError, OSError) as e:
                raise ProviderError(symbol, self.name, f"malformed chart entry: {entry!r}") from e
            closes[day] = close

        points = [
            HistoricalPoint(
                date=day,
                price=close,
                open=round(close * ESTIMATED_OPEN_FACTOR, 2),
                high=round(close * ESTIMATED_HIGH_FACTOR, 2),
                low=round(close * ESTIMATED_LOW_FACTOR, 2),
                volume=0.0,
                estimated=True,
            )
            for day, close in closes.items()
        ]

        self.logger.info(
            "Successfully fetched stock history",
            context={"source": self.name, "symbol": symbol, "points": len(points)},
        )
        return derive_history(points, self.history_window)
