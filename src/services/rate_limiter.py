"""Outbound call pacing so bulk operations stay inside provider quotas."""

import threading
import time
from collections.abc import Callable, Iterable
from typing import TypeVar

from src.models.stock import HistoricalPoint, NormalizedQuote, ProviderKind
from src.services.quote_provider import QuoteProvider
from src.utils.config import config
from src.utils.logger import StructuredLogger

T = TypeVar("T")

logger = StructuredLogger("RateLimiter")


class IntervalPacer:
    """
    Spaces calls at least ``min_interval`` seconds apart, start to start.

    The wait is computed from the start of the previous call, so slow work is
    not delayed further while fast work can never exceed the quota.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "",
    ):
        """
        Initialize the pacer.

        Args:
            min_interval: Minimum seconds between the start of two calls
            clock: Monotonic time source
            sleep: Blocking sleep function
            name: Label used in log entries
        """
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self.min_interval = min_interval
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._last_start: float | None = None
        self._lock = threading.Lock()

    def delay_needed(self) -> float:
        """Seconds to wait before the next call may start."""
        if self._last_start is None:
            return 0.0
        elapsed = self._clock() - self._last_start
        return max(0.0, self.min_interval - elapsed)

    def wait_turn(self) -> float:
        """
        Block until the next call may start, then claim the slot.

        Returns:
            The number of seconds slept
        """
        with self._lock:
            delay = self.delay_needed()
            if delay > 0:
                logger.debug(
                    "Pacing outbound call",
                    context={"provider": self.name, "waited_s": round(delay, 3)},
                )
                self._sleep(delay)
            self._last_start = self._clock()
            return delay

    def reset(self) -> None:
        """Forget the previous call."""
        with self._lock:
            self._last_start = None


class PacedQuoteProvider:
    """Claims a pacing slot before every call it forwards to the wrapped provider."""

    def __init__(self, provider: QuoteProvider, pacer: IntervalPacer):
        self.provider = provider
        self.pacer = pacer
        self.name = provider.name
        self.kind = provider.kind

    def fetch_quote(self, symbol: str) -> NormalizedQuote:
        self.pacer.wait_turn()
        return self.provider.fetch_quote(symbol)

    def fetch_history(self, symbol: str) -> list[HistoricalPoint]:
        self.pacer.wait_turn()
        return self.provider.fetch_history(symbol)


class PacingScheduler:
    """One pacer per provider kind, shared by every batch that uses the provider."""

    def __init__(
        self,
        intervals: dict[ProviderKind, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if intervals is None:
            intervals = {
                "global": config.pacing.global_interval_seconds,
                "regional": config.pacing.regional_interval_seconds,
            }
        self._pacers = {
            kind: IntervalPacer(interval, clock=clock, sleep=sleep, name=kind)
            for kind, interval in intervals.items()
        }
        # Serializes whole batches per provider so two batches never interleave
        self._batch_locks = {kind: threading.Lock() for kind in intervals}

    def pacer(self, provider: ProviderKind) -> IntervalPacer:
        return self._pacers[provider]

    def for_each_sequential(
        self,
        symbols: Iterable[str],
        provider: ProviderKind,
        work: Callable[[str, IntervalPacer], T],
    ) -> list[T]:
        """
        Call ``work(symbol, pacer)`` for each symbol, one at a time.

        ``work`` claims ``pacer.wait_turn()`` before every outbound call it
        makes, so the quota holds however many calls one symbol needs. The
        provider's batch lock is held for the whole run.

        Args:
            symbols: Symbols to process, in order
            provider: Provider kind whose quota applies
            work: Callable invoked once per symbol with the provider's pacer

        Returns:
            The results of ``work`` in input order. Exceptions raised by
            ``work`` propagate to the caller.
        """
        pacer = self._pacers[provider]
        results = []
        with self._batch_locks[provider]:
            for symbol in symbols:
                results.append(work(symbol, pacer))
        return results


# Global pacing instance shared by API-triggered and scheduled batches
pacing_scheduler = PacingScheduler()
