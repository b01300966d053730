"""Domain exceptions raised by the stock store, providers and sync engine."""


class StockError(Exception):
    """Base class for stock tracking errors.

    ``kind`` is a stable identifier the API layer maps to an error code.
    """

    kind = "STOCK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DuplicateSymbolError(StockError):
    """Raised when creating a symbol that is already tracked."""

    kind = "DUPLICATE_SYMBOL"

    def __init__(self, symbol: str):
        super().__init__(f"Stock {symbol} already exists")
        self.symbol = symbol


class StockNotFoundError(StockError):
    """Raised when operating on a symbol that is not tracked."""

    kind = "NOT_FOUND"

    def __init__(self, symbol: str):
        super().__init__(f"Stock {symbol} not found")
        self.symbol = symbol


class StockValidationError(StockError):
    """Raised when required input is missing or malformed."""

    kind = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ProviderError(StockError):
    """Raised when an upstream market-data fetch fails for any reason."""

    kind = "PROVIDER_ERROR"

    def __init__(self, symbol: str, provider: str, message: str):
        super().__init__(f"{provider} request for {symbol} failed: {message}")
        self.symbol = symbol
        self.provider = provider
        self.upstream_message = message
