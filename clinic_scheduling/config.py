"""
Centralized configuration with environment variable overrides.

Working hours, slot interval and booking horizons are configuration
constants here. The scheduling algorithms receive them as parameters
and never read the environment themselves.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from clinic_scheduling.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s"

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _clock_to_minutes(env_var: str, value: str) -> int:
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"{env_var} must be HH:MM, got {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        raise ValueError(f"{env_var} is not a valid clock time: {value!r}")
    return hours * 60 + minutes


@dataclass(frozen=True)
class ClinicConfig:
    """Clinic identity and wall-clock settings."""

    name: str = os.getenv("CLINIC_NAME", "Smile Dental Clinic")
    # Empty means the host's local timezone.
    timezone: str = os.getenv("CLINIC_TIMEZONE", "")


@dataclass(frozen=True)
class ScheduleConfig:
    """Slot grid, business hours and booking horizon settings."""

    work_start_hour: int = _safe_int("WORK_START_HOUR", "8")
    work_end_hour: int = _safe_int("WORK_END_HOUR", "20")
    slot_interval_minutes: int = _safe_int("SLOT_INTERVAL_MINUTES", "30")
    business_open: str = os.getenv("BUSINESS_OPEN", "08:00")
    business_close: str = os.getenv("BUSINESS_CLOSE", "20:00")
    months_ahead: int = _safe_int("BOOKING_HORIZON_MONTHS_AHEAD", "3")
    months_back: int = _safe_int("BOOKING_HORIZON_MONTHS_BACK", "3")
    default_appointment_minutes: int = _safe_int("DEFAULT_APPOINTMENT_MINUTES", "30")

    @property
    def business_open_minute(self) -> int:
        return _clock_to_minutes("BUSINESS_OPEN", self.business_open)

    @property
    def business_close_minute(self) -> int:
        return _clock_to_minutes("BUSINESS_CLOSE", self.business_close)


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    clinic: ClinicConfig = field(default_factory=ClinicConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "clinic-scheduling")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    schedule = config.schedule
    if not 0 <= schedule.work_start_hour < schedule.work_end_hour <= 24:
        raise ValueError(
            "WORK_START_HOUR and WORK_END_HOUR must satisfy 0 <= start < end <= 24, "
            f"got {schedule.work_start_hour} and {schedule.work_end_hour}"
        )
    if schedule.slot_interval_minutes < 1:
        raise ValueError(
            f"SLOT_INTERVAL_MINUTES must be >= 1, got {schedule.slot_interval_minutes}"
        )
    window = (schedule.work_end_hour - schedule.work_start_hour) * 60
    if window % schedule.slot_interval_minutes:
        raise ValueError(
            f"SLOT_INTERVAL_MINUTES ({schedule.slot_interval_minutes}) must evenly "
            f"divide the working window of {window} minutes"
        )
    if schedule.business_open_minute > schedule.business_close_minute:
        raise ValueError(
            "BUSINESS_OPEN must not be later than BUSINESS_CLOSE, "
            f"got {schedule.business_open} and {schedule.business_close}"
        )

    for name, value in [
        ("BOOKING_HORIZON_MONTHS_AHEAD", schedule.months_ahead),
        ("BOOKING_HORIZON_MONTHS_BACK", schedule.months_back),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")

    if schedule.default_appointment_minutes < 1:
        raise ValueError(
            "DEFAULT_APPOINTMENT_MINUTES must be >= 1, "
            f"got {schedule.default_appointment_minutes}"
        )

    if config.clinic.timezone:
        try:
            ZoneInfo(config.clinic.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(
                f"CLINIC_TIMEZONE is not a known IANA zone: {config.clinic.timezone!r}"
            ) from None


def load_config() -> AppConfig:
    """Load and validate application configuration.

    The root handler carries RequestIdFilter so every record, from any
    logger, can render ``%(request_id)s``.
    """
    config = AppConfig()
    _validate_config(config)
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )
    logger.info("Configuration loaded for '%s'", config.clinic.name)
    return config


# Singleton instance
settings = load_config()
