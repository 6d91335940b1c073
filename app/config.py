"""Environment-driven settings for the desk reservation service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class BookingSettings:
    timezone: str
    series_weeks: int


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    log_dir: Optional[Path]


@dataclass(frozen=True)
class AppSettings:
    app_name: str
    booking: BookingSettings
    logging: LoggingSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    log_dir = os.getenv("DESK_BOOKING_LOG_DIR")
    return AppSettings(
        app_name=os.getenv("DESK_BOOKING_APP_NAME", "Desk Reservation Service"),
        booking=BookingSettings(
            timezone=os.getenv("DESK_BOOKING_TIMEZONE", "America/Sao_Paulo"),
            series_weeks=int(os.getenv("DESK_BOOKING_SERIES_WEEKS", "52")),
        ),
        logging=LoggingSettings(
            level=os.getenv("DESK_BOOKING_LOG_LEVEL", "INFO").upper(),
            log_dir=Path(log_dir) if log_dir else None,
        ),
    )
