"""Derived price fields (change, change percent) for records and history."""

import math
from typing import Protocol

from src.models.stock import HistoricalPoint


class PricedRecord(Protocol):
    price: float
    previous_price: float
    change: float
    change_percent: float


def compute_change(price: float, previous_price: float) -> float:
    """Absolute change rounded to 2 decimals."""
    return round(price - previous_price, 2)


def compute_change_percent(change: float, previous_price: float) -> float:
    """
    Percent change rounded to 2 decimals.

    A zero previous price yields 0.0 rather than raising or producing inf/nan.
    """
    if not previous_price:
        return 0.0
    percent = change / previous_price * 100
    if not math.isfinite(percent):
        return 0.0
    return round(percent, 2)


def derive_fields(record: PricedRecord) -> PricedRecord:
    """
    Recompute ``change`` and ``change_percent`` from price and previous price.

    Args:
        record: Any object exposing the four price attributes

    Returns:
        The same record, updated in place
    """
    record.change = compute_change(record.price, record.previous_price)
    record.change_percent = compute_change_percent(record.change, record.previous_price)
    return record


def derive_history(points: list[HistoricalPoint], window: int) -> list[HistoricalPoint]:
    """
    Order, trim and re-derive a historical series.

    The result holds the ``window`` most recent points, newest first. Each
    point's change is relative to the chronologically preceding point in the
    window; the earliest point has a change of 0.
    """
    latest = sorted(points, key=lambda p: p.date, reverse=True)[:window]
    chronological = list(reversed(latest))

    previous: HistoricalPoint | None = None
    for point in chronological:
        if previous is None:
            point.change = 0.0
            point.change_percent = 0.0
        else:
            point.change = compute_change(point.price, previous.price)
            point.change_percent = compute_change_percent(point.change, previous.price)
        previous = point

    return list(reversed(chronological))
