"""Pydantic schemas for stock API request/response validation."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.stock import HistoricalPoint, RefreshReport


class StockCreateRequest(BaseModel):
    """Request model for tracking a new symbol."""

    symbol: str
    name: str | None = None
    sector: str | None = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol_not_empty(cls, v: str) -> str:
        """Validate symbol is not empty."""
        if not v or not v.strip():
            raise ValueError("Please provide a stock symbol")
        return v.strip().upper()


class StockUpdateRequest(BaseModel):
    """Request model for administrative stock edits."""

    name: str | None = None
    sector: str | None = None
    price: float | None = Field(default=None, ge=0)
    previous_price: float | None = Field(default=None, ge=0)
    use_api_refresh: bool = False


class HistoricalPointResponse(BaseModel):
    """One day of a stock's trailing series."""

    date: date
    price: float
    open: float
    high: float
    low: float
    volume: float
    change: float
    change_percent: float
    estimated: bool = False

    @classmethod
    def from_point(cls, point: HistoricalPoint) -> "HistoricalPointResponse":
        return cls(**point.to_dict())


class StockResponse(BaseModel):
    """Response model for a tracked stock."""

    symbol: str
    name: str
    price: float
    previous_price: float
    change: float
    change_percent: float
    sector: str
    last_updated: datetime
    historical_data: list[HistoricalPointResponse] = []

    model_config = ConfigDict(from_attributes=True)


class RefreshFailureResponse(BaseModel):
    symbol: str
    error: str


class RefreshReportResponse(BaseModel):
    """Response model for a bulk refresh."""

    succeeded: list[str]
    failed: list[RefreshFailureResponse]
    total: int

    @classmethod
    def from_report(cls, report: RefreshReport) -> "RefreshReportResponse":
        return cls(total=report.total, **report.to_dict())
