"""Environment configuration for the compliance events backend."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL", "sqlite:///./compliance_events.db"
        )
        # Shared secret for backend-to-backend calls (empty disables the check)
        self.EDGE_FUNCTION_SECRET: str = os.getenv("EDGE_FUNCTION_SECRET", "")
        self.EDGE_SECRET_HEADER: str = "x-edge-secret"

        # Emit -> process chaining; empty URL means process in-process
        self.PROCESS_EVENT_URL: str = os.getenv("PROCESS_EVENT_URL", "")
        self.PROCESS_TIMEOUT_SECONDS: float = float(
            os.getenv("PROCESS_TIMEOUT_SECONDS", "10")
        )

        # Overdue scanner
        self.OVERDUE_DEDUP_WINDOW_HOURS: int = int(
            os.getenv("OVERDUE_DEDUP_WINDOW_HOURS", "0")
        )
        self.SCAN_INTERVAL_SECONDS: int = int(os.getenv("SCAN_INTERVAL_SECONDS", "3600"))

        self.APP_LINK_BASE: str = os.getenv("APP_LINK_BASE", "/dashboard")

    def validate(self) -> None:
        """Validate that required environment variables are set."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if self.OVERDUE_DEDUP_WINDOW_HOURS < 0:
            raise ValueError("OVERDUE_DEDUP_WINDOW_HOURS must be zero or positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
