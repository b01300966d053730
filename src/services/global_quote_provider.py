"""Global quote source backed by the Alpha Vantage API."""

from datetime import UTC, datetime

from src.models.stock import HistoricalPoint, NormalizedQuote
from src.services.derived_fields import derive_history
from src.services.errors import ProviderError
from src.services.quote_provider import QuoteProvider
from src.utils.config import config

# Keys Alpha Vantage uses to report problems inside a 200 response
UPSTREAM_ERROR_KEYS = ("Error Message", "Note", "Information")


class GlobalQuoteProvider(QuoteProvider):
    """Parses Alpha Vantage GLOBAL_QUOTE and TIME_SERIES_DAILY documents."""

    name = "Alpha Vantage"
    kind = "global"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        history_window: int | None = None,
    ):
        super().__init__(timeout=timeout, history_window=history_window)
        self.api_key = api_key or config.api.alphavantage_api_key or "demo"
        self.base_url = base_url or config.api.alphavantage_base_url

    def _query(self, function: str, symbol: str, **extra) -> dict:
        params = {"function": function, "symbol": symbol, "apikey": self.api_key, **extra}
        data = self._get_json(self.base_url, symbol, params=params)
        if not isinstance(data, dict):
            raise ProviderError(symbol, self.name, "unexpected response shape")
        for key in UPSTREAM_ERROR_KEYS:
            if key in data:
                raise ProviderError(symbol, self.name, str(data[key]))
        return data

    def fetch_quote(self, symbol: str) -> NormalizedQuote:
        """
        Fetch the current quote for a symbol.

        Args:
            symbol: Ticker symbol (e.g., "AAPL")

        Returns:
            NormalizedQuote; Alpha Vantage supplies neither name nor sector

        Raises:
            ProviderError: On transport failure or a malformed document
        """
        symbol = symbol.strip().upper()
        self.logger.info(
            "Starting stock quote fetch",
            context={"source": self.name, "symbol": symbol, "type": "quote"},
        )
        data = self._query("GLOBAL_QUOTE", symbol)

        quote = data.get("Global Quote")
        if not quote:
            raise ProviderError(symbol, self.name, "Invalid response: no 'Global Quote' data")

        result = NormalizedQuote(
            symbol=str(quote.get("01. symbol") or symbol).upper(),
            name="",
            price=self._number(quote, "05. price", symbol),
            previous_price=self._number(quote, "08. previous close", symbol),
            change=self._number(quote, "09. change", symbol),
            change_percent=self._number(quote, "10. change percent", symbol),
            sector=None,
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
        Fetch the trailing daily series for a symbol.

        Returns:
            Up to ``history_window`` points, newest first, with change relative
            to the preceding day
        """
        symbol = symbol.strip().upper()
        data = self._query("TIME_SERIES_DAILY", symbol, outputsize="compact")

        time_series = data.get("Time Series (Daily)")
        if not isinstance(time_series, dict) or not time_series:
            raise ProviderError(
                symbol, self.name, "Invalid response: no 'Time Series (Daily)' data"
            )

        # ISO dates sort lexically
        dates = sorted(time_series.keys(), reverse=True)[: self.history_window]
        points = []
        for date_str in dates:
            day = time_series[date_str]
            try:
                day_date = datetime.strptime(date_str, "%Y-%m-%d").date()
            except ValueError as e:
                raise ProviderError(symbol, self.name, f"invalid date '{date_str}'") from e
            points.append(
                HistoricalPoint(
                    date=day_date,
                    price=self._number(day, "4. close", symbol),
                    open=self._number(day, "1. open", symbol),
                    high=self._number(day, "2. high", symbol),
                    low=self._number(day, "3. low", symbol),
                    volume=self._number(day, "5. volume", symbol),
                )
            )

        self.logger.info(
            "Successfully fetched stock history",
            context={"source": self.name, "symbol": symbol, "points": len(points)},
        )
        return derive_history(points, self.history_window)
