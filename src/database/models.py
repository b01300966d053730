"""SQLAlchemy database models for persistent storage."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class StockRecord(Base):
    """Database model for a tracked stock symbol and its trailing history."""
    __tablename__ = "stocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    previous_price = Column(Float, nullable=False)
    change = Column(Float, nullable=False, default=0.0)  # Derived on save
    change_percent = Column(Float, nullable=False, default=0.0)  # Derived on save
    sector = Column(String, nullable=False, default="Unknown")
    last_updated = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC))
    historical_data = Column(Text, nullable=False, default="[]")  # JSON string, newest first

    def __repr__(self) -> str:
        return f"<StockRecord {self.symbol} price={self.price}>"
