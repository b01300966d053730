"""Persistence for tracked stocks; every write goes through derived-field recomputation."""

import json
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.database.models import StockRecord
from src.models.stock import HistoricalPoint
from src.services.derived_fields import derive_fields, derive_history
from src.services.errors import DuplicateSymbolError, StockNotFoundError, StockValidationError
from src.utils.config import config
from src.utils.logger import StructuredLogger

DEFAULT_SECTOR = "Unknown"


def normalize_symbol(symbol: str) -> str:
    """
    Canonical form of a ticker symbol.

    Raises:
        StockValidationError: If the symbol is missing or blank
    """
    if not symbol or not symbol.strip():
        raise StockValidationError("symbol", "Please provide a stock symbol")
    return symbol.strip().upper()


class StockStore:
    """Owns all StockRecord instances for one database session."""

    def __init__(self, db_session: Session, history_window: int | None = None):
        """
        Initialize the store.

        Args:
            db_session: SQLAlchemy database session
            history_window: Number of trailing history points to keep
        """
        self.db_session = db_session
        self.history_window = history_window or config.history.window_size
        self.logger = StructuredLogger("StockStore")

    def find(self, symbol: str) -> StockRecord | None:
        """Return the record for ``symbol`` or None."""
        return (
            self.db_session.query(StockRecord)
            .filter(StockRecord.symbol == normalize_symbol(symbol))
            .first()
        )

    def get(self, symbol: str) -> StockRecord:
        """Return the record for ``symbol`` or raise StockNotFoundError."""
        record = self.find(symbol)
        if record is None:
            raise StockNotFoundError(normalize_symbol(symbol))
        return record

    def find_all(self, sorted_by_symbol: bool = True) -> list[StockRecord]:
        """Return every tracked stock, by default in symbol order."""
        query = self.db_session.query(StockRecord)
        if sorted_by_symbol:
            query = query.order_by(StockRecord.symbol)
        return query.all()

    def create(
        self,
        symbol: str,
        name: str,
        price: float,
        previous_price: float,
        sector: str | None = None,
        historical_data: list[HistoricalPoint] | None = None,
    ) -> StockRecord:
        """
        Persist a new stock.

        Raises:
            DuplicateSymbolError: If the symbol is already tracked
            StockValidationError: If a required field is missing
        """
        symbol = normalize_symbol(symbol)
        if not name or not name.strip():
            raise StockValidationError("name", "Please provide a stock name")
        self._require_number("price", price)
        self._require_number("previous_price", previous_price)

        if self.find(symbol) is not None:
            raise DuplicateSymbolError(symbol)

        record = StockRecord(
            symbol=symbol,
            name=name.strip(),
            price=float(price),
            previous_price=float(previous_price),
            sector=(sector or DEFAULT_SECTOR).strip() or DEFAULT_SECTOR,
        )
        self.set_history(record, historical_data or [])
        derive_fields(record)
        record.last_updated = datetime.now(UTC)

        self.db_session.add(record)
        try:
            self.db_session.commit()
        except IntegrityError as e:
            # Unique constraint on symbol lost a race with a concurrent create
            self.db_session.rollback()
            raise DuplicateSymbolError(symbol) from e

        self.db_session.refresh(record)
        self.logger.debug("Stock created", context={"symbol": symbol})
        return record

    def save(self, record: StockRecord) -> StockRecord:
        """Recompute derived fields, stamp ``last_updated`` and commit."""
        self._require_number("price", record.price)
        self._require_number("previous_price", record.previous_price)

        derive_fields(record)
        record.last_updated = datetime.now(UTC)

        self.db_session.add(record)
        try:
            self.db_session.commit()
        except SQLAlchemyError:
            self.db_session.rollback()
            raise
        self.db_session.refresh(record)
        return record

    def discard_changes(self) -> None:
        """Drop uncommitted edits so a failed update cannot leak into a later save."""
        self.db_session.rollback()

    def delete_all(self) -> int:
        """Delete every tracked stock and return how many were removed."""
        count = self.db_session.query(StockRecord).delete()
        self.db_session.commit()
        self.logger.info("Cleared tracked stocks", context={"deleted": count})
        return count

    def delete(self, symbol: str) -> None:
        """
        Delete a tracked stock.

        Raises:
            StockNotFoundError: If the symbol is not tracked
        """
        record = self.get(symbol)
        self.db_session.delete(record)
        self.db_session.commit()
        self.logger.debug("Stock deleted", context={"symbol": record.symbol})

    def get_history(self, record: StockRecord) -> list[HistoricalPoint]:
        """Decode the stored history of a record (newest first)."""
        if not record.historical_data:
            return []
        try:
            raw = json.loads(record.historical_data)
        except (json.JSONDecodeError, TypeError):
            self.logger.warning(
                "Discarding unreadable historical data", context={"symbol": record.symbol}
            )
            return []
        return [HistoricalPoint.from_dict(item) for item in raw]

    def set_history(self, record: StockRecord, points: list[HistoricalPoint]) -> None:
        """Trim, order and re-derive ``points`` and attach them to ``record``."""
        window = derive_history(points, self.history_window)
        record.historical_data = json.dumps([p.to_dict() for p in window])

    @staticmethod
    def _require_number(field: str, value) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise StockValidationError(field, f"Please provide a numeric {field}")
