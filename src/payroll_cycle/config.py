"""Configuration management for the payroll cycle engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    anchor_payday: date
    frequency_days: int
    timezone: str
    processing_lock_ttl_seconds: int
    location_a_name: str
    location_b_name: str
    default_ot_rate: Decimal
    host: str
    port: int
    debug: bool
    log_level: str

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./payroll_cycle.db",
            ),
            anchor_payday=date.fromisoformat(os.getenv("PAYROLL_ANCHOR_DATE", "2025-11-28")),
            frequency_days=int(os.getenv("PAYROLL_FREQUENCY_DAYS", "14")),
            timezone=os.getenv("PAYROLL_TIMEZONE", "America/Chicago"),
            processing_lock_ttl_seconds=int(os.getenv("PROCESSING_LOCK_TTL_SECONDS", "600")),
            location_a_name=os.getenv("LOCATION_A_NAME", "Location A"),
            location_b_name=os.getenv("LOCATION_B_NAME", "Location B"),
            default_ot_rate=Decimal(os.getenv("DEFAULT_OT_RATE", "1.5")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the API and CLI entry points."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
