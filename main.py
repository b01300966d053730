"""Main application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from src.api.error_handlers import (
    stock_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from src.api.routes import router
from src.database.db import init_db
from src.services.errors import StockError
from src.services.scheduler_service import SchedulerService
from src.utils.config import config
from src.utils.logger import StructuredLogger

logger = StructuredLogger("App")

# Initialize database
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    try:
        config.validate()
    except ValueError as e:
        logger.critical("Configuration error", exception=e)
        raise

    scheduler = None
    if config.scheduler.enabled:
        scheduler = SchedulerService(timezone=config.scheduler.timezone)
        scheduler.schedule_refresh(config.scheduler.refresh_time)
    yield
    # Shutdown
    if scheduler:
        scheduler.stop()


# Create FastAPI app
app = FastAPI(
    title="Stock Tracker",
    description="Tracked stock quotes and daily history synchronized from market-data providers",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StockError, stock_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include API routes
app.include_router(router, prefix="/api", tags=["stocks"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
