"""Quote provider interface, shared HTTP handling and symbol routing."""

import threading
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any

import requests

from src.models.stock import HistoricalPoint, NormalizedQuote, ProviderKind
from src.services.errors import ProviderError
from src.utils.config import config
from src.utils.logger import StructuredLogger

REGIONAL_SUFFIXES = (".NSE", ".NS")


def provider_kind_for_symbol(symbol: str) -> ProviderKind:
    """
    Route a symbol to a provider by suffix.

    Symbols ending in ``.NSE`` or ``.NS`` (any case) belong to the regional
    exchange; everything else goes to the global quote source.
    """
    if symbol.strip().upper().endswith(REGIONAL_SUFFIXES):
        return "regional"
    return "global"


def strip_regional_suffix(symbol: str) -> str:
    """Exchange-native ticker for a regional symbol (``TCS.NSE`` -> ``TCS``)."""
    upper = symbol.strip().upper()
    for suffix in REGIONAL_SUFFIXES:
        if upper.endswith(suffix):
            return upper[: -len(suffix)]
    return upper


class QuoteProvider(ABC):
    """Fetches a current quote and a short daily history for one symbol."""

    name: str = "provider"
    kind: ProviderKind = "global"

    def __init__(self, timeout: float | None = None, history_window: int | None = None):
        """
        Initialize the provider.

        Args:
            timeout: Per-request timeout in seconds
            history_window: Maximum number of daily points returned by fetch_history
        """
        self.timeout = timeout or config.api.request_timeout
        self.history_window = history_window or config.history.window_size
        self.logger = StructuredLogger(type(self).__name__)
        # Provider instances are shared across request and scheduler threads;
        # requests.Session is not thread-safe, so each thread gets its own.
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """HTTP session owned by the calling thread, created on first use."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _new_session(self) -> requests.Session:
        return requests.Session()

    @abstractmethod
    def fetch_quote(self, symbol: str) -> NormalizedQuote:
        """Return the current quote or raise ProviderError."""

    @abstractmethod
    def fetch_history(self, symbol: str) -> list[HistoricalPoint]:
        """Return up to ``history_window`` daily points, newest first, or raise ProviderError."""

    def _get_json(self, url: str, symbol: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a JSON document, converting every transport failure into ProviderError.
        """
        context = {"source": self.name, "symbol": symbol, "url": url}
        self.logger.debug("Requesting upstream data", context=context)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise ProviderError(symbol, self.name, f"timed out after {self.timeout}s") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise ProviderError(symbol, self.name, f"HTTP {status}") from e
        except requests.RequestException as e:
            raise ProviderError(symbol, self.name, f"request failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(symbol, self.name, "response was not valid JSON") from e

    def _number(self, container: Any, key: str, symbol: str) -> float:
        """Read a numeric field (number or numeric string) or raise ProviderError."""
        if not isinstance(container, dict) or key not in container:
            raise ProviderError(symbol, self.name, f"missing field '{key}'")
        value = container[key]
        if isinstance(value, str):
            value = value.strip().rstrip("%").replace(",", "")
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ProviderError(symbol, self.name, f"non-numeric field '{key}': {value!r}") from e

    def close(self) -> None:
        """Close every session opened by any thread."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()


@lru_cache(maxsize=1)
def get_providers() -> dict[ProviderKind, QuoteProvider]:
    """Shared provider instances, one per kind, created on first use."""
    from src.services.global_quote_provider import GlobalQuoteProvider
    from src.services.regional_exchange_provider import RegionalExchangeProvider

    return {
        "global": GlobalQuoteProvider(),
        "regional": RegionalExchangeProvider(),
    }


def select_provider(symbol: str, providers: dict[ProviderKind, QuoteProvider]) -> QuoteProvider:
    """Pick the provider responsible for ``symbol``."""
    return providers[provider_kind_for_symbol(symbol)]
