"""API routes for tracked stocks."""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import Caller, get_sync_service, require_admin
from src.database.models import StockRecord
from src.models.stock_schemas import (
    HistoricalPointResponse,
    RefreshReportResponse,
    StockCreateRequest,
    StockResponse,
    StockUpdateRequest,
)
from src.services.stock_sync_service import StockSyncService

router = APIRouter()


def _to_stock_response(service: StockSyncService, record: StockRecord) -> StockResponse:
    """Convert a StockRecord to its response model, decoding stored history."""
    return StockResponse(
        symbol=record.symbol,
        name=record.name,
        price=record.price,
        previous_price=record.previous_price,
        change=record.change,
        change_percent=record.change_percent,
        sector=record.sector,
        last_updated=record.last_updated,
        historical_data=[
            HistoricalPointResponse.from_point(p) for p in service.store.get_history(record)
        ],
    )


# Handlers are sync so blocking provider calls run in the threadpool.


@router.get("/stocks")
def list_stocks(service: StockSyncService = Depends(get_sync_service)):
    """
    List every tracked stock sorted by symbol.

    Returns:
        Stocks with a count
    """
    stocks = [_to_stock_response(service, record) for record in service.list_stocks()]
    return {"stocks": stocks, "count": len(stocks)}


@router.post("/stocks/refresh", response_model=RefreshReportResponse)
def refresh_all_stocks(
    _: Caller = Depends(require_admin),
    service: StockSyncService = Depends(get_sync_service),
):
    """
    Refresh every tracked stock from its provider.

    Per-symbol failures are reported, not raised.
    """
    return RefreshReportResponse.from_report(service.refresh_all())


@router.get("/stocks/{symbol}", response_model=StockResponse)
def get_stock(symbol: str, service: StockSyncService = Depends(get_sync_service)):
    """Retrieve one tracked stock."""
    return _to_stock_response(service, service.get_stock(symbol))


@router.get("/stocks/{symbol}/history", response_model=list[HistoricalPointResponse])
def get_stock_history(symbol: str, service: StockSyncService = Depends(get_sync_service)):
    """Retrieve a stock's trailing daily series, fetching it if none is stored."""
    return [HistoricalPointResponse.from_point(p) for p in service.get_history(symbol)]


@router.post("/stocks", response_model=StockResponse, status_code=status.HTTP_201_CREATED)
def create_stock(
    stock_data: StockCreateRequest,
    _: Caller = Depends(require_admin),
    service: StockSyncService = Depends(get_sync_service),
):
    """
    Start tracking a symbol with live provider data.

    Args:
        stock_data: Symbol with optional name and sector overrides

    Returns:
        Created stock
    """
    record = service.create_tracked(
        stock_data.symbol, name=stock_data.name, sector=stock_data.sector
    )
    return _to_stock_response(service, record)


@router.put("/stocks/{symbol}", response_model=StockResponse)
def update_stock(
    symbol: str,
    stock_data: StockUpdateRequest,
    _: Caller = Depends(require_admin),
    service: StockSyncService = Depends(get_sync_service),
):
    """
    Edit a stock's fields and optionally refresh it from its provider.

    Args:
        symbol: Stock symbol
        stock_data: Fields to change

    Returns:
        Updated stock
    """
    record = service.update_stock(
        symbol,
        name=stock_data.name,
        sector=stock_data.sector,
        price=stock_data.price,
        previous_price=stock_data.previous_price,
        use_api_refresh=stock_data.use_api_refresh,
    )
    return _to_stock_response(service, record)


@router.delete("/stocks/{symbol}")
def delete_stock(
    symbol: str,
    _: Caller = Depends(require_admin),
    service: StockSyncService = Depends(get_sync_service),
):
    """Stop tracking a stock."""
    service.delete_stock(symbol)
    return {"message": "Stock deleted successfully"}
