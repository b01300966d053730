"""Pytest configuration and fixtures."""

import os

# Must be set before the application modules create their engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import tempfile
from dataclasses import replace
from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from src.api.dependencies import get_sync_service
from src.database.db import get_db
from src.database.models import Base
from src.models.stock import HistoricalPoint, NormalizedQuote
from src.services.errors import ProviderError
from src.services.rate_limiter import PacingScheduler
from src.services.stock_sync_service import StockSyncService
from src.services.token_service import TokenService

FIXED_TODAY = date(2024, 3, 15)


class FakeClock:
    """Manual clock whose sleep advances time."""

    def __init__(self):
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeQuoteProvider:
    """In-memory provider returning canned quotes and histories."""

    def __init__(self, name: str, kind: str):
        self.name = name
        self.kind = kind
        self.quotes: dict[str, NormalizedQuote] = {}
        self.histories: dict[str, list[HistoricalPoint]] = {}
        self.quote_errors: set[str] = set()
        self.history_errors: set[str] = set()
        self.quote_calls: list[str] = []
        self.history_calls: list[str] = []
        # When a clock is attached, every outbound call records its start time
        self.clock: FakeClock | None = None
        self.call_times: list[float] = []

    def _record_call(self) -> None:
        if self.clock is not None:
            self.call_times.append(self.clock())

    def add_quote(self, symbol, price, previous_price, name="", sector=None):
        change = round(price - previous_price, 2)
        self.quotes[symbol] = NormalizedQuote(
            symbol=symbol,
            name=name,
            price=price,
            previous_price=previous_price,
            change=change,
            change_percent=round(change / previous_price * 100, 2) if previous_price else 0.0,
            sector=sector,
            timestamp=datetime.now(UTC),
        )

    def add_history(self, symbol, closes, end: date = FIXED_TODAY):
        """Register daily closes, oldest first, ending on ``end``."""
        start = end - timedelta(days=len(closes) - 1)
        self.histories[symbol] = [
            HistoricalPoint(
                date=start + timedelta(days=i),
                price=close,
                open=close,
                high=close,
                low=close,
                volume=1000.0,
            )
            for i, close in enumerate(closes)
        ]

    def fetch_quote(self, symbol: str) -> NormalizedQuote:
        self.quote_calls.append(symbol)
        self._record_call()
        if symbol in self.quote_errors or symbol not in self.quotes:
            raise ProviderError(symbol, self.name, "upstream unavailable")
        return self.quotes[symbol]

    def fetch_history(self, symbol: str) -> list[HistoricalPoint]:
        self.history_calls.append(symbol)
        self._record_call()
        if symbol in self.history_errors or symbol not in self.histories:
            raise ProviderError(symbol, self.name, "no history")
        return [replace(point) for point in self.histories[symbol]]


@pytest.fixture(scope="function")
def test_db():
    """Create a file-based test database."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def test_session(test_db):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db)
    session = TestingSessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def providers():
    """Fake global and regional providers."""
    return {
        "global": FakeQuoteProvider("Fake Global", "global"),
        "regional": FakeQuoteProvider("Fake Regional", "regional"),
    }


@pytest.fixture
def sync_service(test_session, providers):
    """Sync service with fake providers, no pacing delay and a fixed date."""
    return StockSyncService(
        db_session=test_session,
        providers=providers,
        pacing=PacingScheduler(intervals={"global": 0, "regional": 0}),
        today=lambda: FIXED_TODAY,
    )


@pytest.fixture
def test_client(test_session, sync_service):
    """Create a test client with test database and fake providers."""
    def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_service] = lambda: sync_service

    from fastapi.testclient import TestClient
    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = TokenService.create_access_token("admin@example.com", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    token = TokenService.create_access_token("user@example.com", role="user")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fixed_today():
    """Calendar date the sync_service fixture treats as today."""
    return FIXED_TODAY


@pytest.fixture
def clock():
    return FakeClock()
