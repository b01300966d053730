"""Configuration management for the application."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class APIConfig:
    """Upstream market-data API configuration."""

    alphavantage_api_key: str | None = None
    alphavantage_base_url: str = "https://www.alphavantage.co/query"
    nse_base_url: str = "https://www.nseindia.com/api"
    request_timeout: float = 10.0  # Seconds, applied to every outbound call


@dataclass
class PacingConfig:
    """Minimum spacing between calls to one provider within a batch."""

    global_interval_seconds: float = 12.0  # Alpha Vantage free tier: 5 calls/minute
    regional_interval_seconds: float = 1.0


@dataclass
class HistoryConfig:
    """Historical series retention."""

    window_size: int = 10


@dataclass
class SchedulerConfig:
    """Scheduled bulk refresh configuration."""

    refresh_time: str  # HH:MM format
    enabled: bool = False
    timezone: str = "UTC"


@dataclass
class JWTConfig:
    """JWT configuration."""

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60


@dataclass
class DatabaseConfig:
    """Database configuration."""

    database_url: str
    echo: bool = False


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: str = "INFO"
    file_path: str | None = None


class Config:
    """Main application configuration."""

    def __init__(self):
        self.api = APIConfig(
            alphavantage_api_key=os.getenv("ALPHAVANTAGE_API_KEY"),
            alphavantage_base_url=os.getenv(
                "ALPHAVANTAGE_BASE_URL", "https://www.alphavantage.co/query"
            ),
            nse_base_url=os.getenv("NSE_BASE_URL", "https://www.nseindia.com/api"),
            request_timeout=float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10")),
        )

        self.pacing = PacingConfig(
            global_interval_seconds=float(os.getenv("GLOBAL_PACING_SECONDS", "12")),
            regional_interval_seconds=float(os.getenv("REGIONAL_PACING_SECONDS", "1")),
        )

        self.history = HistoryConfig(
            window_size=int(os.getenv("HISTORY_WINDOW_SIZE", "10")),
        )

        self.scheduler = SchedulerConfig(
            refresh_time=os.getenv("REFRESH_TIME", "18:00"),
            enabled=os.getenv("REFRESH_SCHEDULER_ENABLED", "false").lower() == "true",
            timezone=os.getenv("TIMEZONE", "UTC"),
        )

        self.database = DatabaseConfig(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./stock_tracker.db"),
            echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
        )

        self.jwt = JWTConfig(
            secret_key=os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production"),
            algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        )

        self.logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            file_path=os.getenv("LOG_FILE"),
        )

    def validate(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if configuration is valid

        Raises:
            ValueError if configuration is invalid
        """
        if self.api.request_timeout <= 0:
            raise ValueError("PROVIDER_TIMEOUT_SECONDS must be positive")
        if self.pacing.global_interval_seconds < 0 or self.pacing.regional_interval_seconds < 0:
            raise ValueError("Pacing intervals must not be negative")
        if self.history.window_size <= 0:
            raise ValueError("HISTORY_WINDOW_SIZE must be positive")
        if self.logging.level not in LOG_LEVELS:
            raise ValueError(f"Invalid LOG_LEVEL: {self.logging.level}")

        # Validate time format
        time_str = self.scheduler.refresh_time
        try:
            parts = time_str.split(":")
            if len(parts) != 2:
                raise ValueError(f"Invalid time format: {time_str}. Use HH:MM")
            hour, minute = int(parts[0]), int(parts[1])
            if not (0 <= hour < 24 and 0 <= minute < 60):
                raise ValueError(f"Invalid time values: {time_str}")
        except (ValueError, AttributeError) as e:
            raise ValueError(f"Invalid scheduler time configuration: {e}") from e

        return True


# Global config instance
config = Config()
