"""Stock quote and history models shared by providers and the sync engine."""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Literal

ProviderKind = Literal["global", "regional"]


@dataclass
class HistoricalPoint:
    """One trading day in a symbol's trailing series."""

    date: date
    price: float
    open: float
    high: float
    low: float
    volume: float
    change: float = 0.0
    change_percent: float = 0.0
    estimated: bool = False  # True when open/high/low are approximated from the close

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoricalPoint":
        """Build a point from its stored dictionary form."""
        return cls(
            date=date.fromisoformat(data["date"]),
            price=float(data["price"]),
            open=float(data.get("open", 0.0)),
            high=float(data.get("high", 0.0)),
            low=float(data.get("low", 0.0)),
            volume=float(data.get("volume", 0.0)),
            change=float(data.get("change", 0.0)),
            change_percent=float(data.get("change_percent", 0.0)),
            estimated=bool(data.get("estimated", False)),
        )


@dataclass
class NormalizedQuote:
    """A current price snapshot in the canonical shape, whatever the provider."""

    symbol: str
    name: str
    price: float
    previous_price: float
    change: float
    change_percent: float
    sector: str | None
    timestamp: datetime


@dataclass
class RefreshFailure:
    """A symbol that could not be refreshed in a batch."""

    symbol: str
    error: str


@dataclass
class RefreshReport:
    """Outcome of a bulk refresh or seed; every input symbol lands in exactly one list."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[RefreshFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "failed": [asdict(f) for f in self.failed],
        }


@dataclass
class SeedEntry:
    """A catalogue symbol to start tracking, with optional name and sector overrides."""

    symbol: str
    name: str | None = None
    sector: str | None = None
