"""Tests for provider call pacing."""

import pytest

from src.services.errors import ProviderError
from src.services.rate_limiter import IntervalPacer, PacedQuoteProvider, PacingScheduler


class TestIntervalPacer:
    """Unit tests for the interval pacer."""

    def test_first_call_does_not_wait(self, clock):
        pacer = IntervalPacer(12.0, clock=clock, sleep=clock.sleep)
        assert pacer.wait_turn() == 0.0
        assert clock.sleeps == []

    def test_back_to_back_calls_wait_full_interval(self, clock):
        pacer = IntervalPacer(12.0, clock=clock, sleep=clock.sleep)
        pacer.wait_turn()
        assert pacer.wait_turn() == 12.0
        assert clock.sleeps == [12.0]

    def test_elapsed_work_time_counts_toward_interval(self, clock):
        pacer = IntervalPacer(12.0, clock=clock, sleep=clock.sleep)
        pacer.wait_turn()
        clock.now += 5.0  # Work took 5 seconds
        assert pacer.wait_turn() == 7.0

    def test_slow_work_is_not_delayed(self, clock):
        pacer = IntervalPacer(1.0, clock=clock, sleep=clock.sleep)
        pacer.wait_turn()
        clock.now += 3.0
        assert pacer.wait_turn() == 0.0
        assert clock.sleeps == []

    def test_reset_forgets_previous_call(self, clock):
        pacer = IntervalPacer(12.0, clock=clock, sleep=clock.sleep)
        pacer.wait_turn()
        pacer.reset()
        assert pacer.delay_needed() == 0.0

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            IntervalPacer(-1.0)


class TestPacingScheduler:
    """Tests for sequential, paced batch processing."""

    @staticmethod
    def _paced(work):
        def run(symbol, pacer):
            pacer.wait_turn()
            return work(symbol)
        return run

    def test_for_each_sequential_preserves_order_and_spacing(self, clock):
        scheduler = PacingScheduler(
            intervals={"global": 12.0, "regional": 1.0}, clock=clock, sleep=clock.sleep
        )
        starts = []

        def work(symbol):
            starts.append((symbol, clock.now))
            clock.now += 2.0
            return symbol.lower()

        results = scheduler.for_each_sequential(["AAPL", "MSFT", "IBM"], "global", self._paced(work))

        assert results == ["aapl", "msft", "ibm"]
        assert [s for s, _ in starts] == ["AAPL", "MSFT", "IBM"]
        gaps = [b - a for (_, a), (_, b) in zip(starts, starts[1:])]
        assert all(gap >= 12.0 for gap in gaps)
        assert clock.sleeps == [10.0, 10.0]

    def test_work_receives_provider_pacer(self, clock):
        scheduler = PacingScheduler(
            intervals={"global": 12.0, "regional": 1.0}, clock=clock, sleep=clock.sleep
        )
        seen = scheduler.for_each_sequential(["TCS.NSE"], "regional", lambda s, pacer: pacer)

        assert seen == [scheduler.pacer("regional")]
        assert seen[0].min_interval == 1.0

    def test_every_call_within_one_item_is_paced(self, clock):
        scheduler = PacingScheduler(intervals={"global": 12.0}, clock=clock, sleep=clock.sleep)
        starts = []

        def work(symbol, pacer):
            for _ in range(2):
                pacer.wait_turn()
                starts.append(clock.now)

        scheduler.for_each_sequential(["AAPL", "MSFT"], "global", work)

        assert starts == [1000.0, 1012.0, 1024.0, 1036.0]

    def test_providers_are_paced_independently(self, clock):
        scheduler = PacingScheduler(
            intervals={"global": 12.0, "regional": 1.0}, clock=clock, sleep=clock.sleep
        )
        scheduler.for_each_sequential(["AAPL"], "global", self._paced(lambda s: s))
        scheduler.for_each_sequential(["TCS.NSE", "INFY.NSE"], "regional", self._paced(lambda s: s))

        assert clock.sleeps == [1.0]

    def test_pacing_carries_across_batches(self, clock):
        scheduler = PacingScheduler(intervals={"global": 12.0}, clock=clock, sleep=clock.sleep)
        scheduler.for_each_sequential(["AAPL"], "global", self._paced(lambda s: s))
        scheduler.for_each_sequential(["MSFT"], "global", self._paced(lambda s: s))

        assert clock.sleeps == [12.0]

    def test_work_exceptions_propagate(self, clock):
        scheduler = PacingScheduler(intervals={"global": 0.0}, clock=clock, sleep=clock.sleep)

        def work(symbol, pacer):
            raise RuntimeError(symbol)

        with pytest.raises(RuntimeError, match="AAPL"):
            scheduler.for_each_sequential(["AAPL", "MSFT"], "global", work)

    def test_empty_batch(self, clock):
        scheduler = PacingScheduler(intervals={"global": 12.0}, clock=clock, sleep=clock.sleep)
        assert scheduler.for_each_sequential([], "global", lambda s, pacer: s) == []


class TestPacedQuoteProvider:
    """Tests for the pacing provider wrapper."""

    def test_quote_and_history_each_claim_a_slot(self, clock, providers):
        fake = providers["global"]
        fake.clock = clock
        fake.add_quote("AAPL", 150.0, 148.0)
        fake.add_history("AAPL", [148.0, 150.0])
        paced = PacedQuoteProvider(fake, IntervalPacer(12.0, clock=clock, sleep=clock.sleep))

        paced.fetch_quote("AAPL")
        paced.fetch_history("AAPL")

        assert fake.call_times == [1000.0, 1012.0]
        assert clock.sleeps == [12.0]

    def test_exposes_wrapped_identity(self, providers):
        paced = PacedQuoteProvider(providers["regional"], IntervalPacer(0.0))
        assert paced.name == "Fake Regional"
        assert paced.kind == "regional"

    def test_slot_is_claimed_even_when_call_fails(self, clock, providers):
        pacer = IntervalPacer(12.0, clock=clock, sleep=clock.sleep)
        paced = PacedQuoteProvider(providers["global"], pacer)

        with pytest.raises(ProviderError):
            paced.fetch_quote("MISSING")

        assert pacer.delay_needed() == 12.0
