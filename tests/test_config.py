"""Tests for configuration loading and validation."""

import logging

import pytest

from clinic_scheduling.config import (
    LOG_FORMAT,
    AppConfig,
    ClinicConfig,
    ScheduleConfig,
    _validate_config,
)
from clinic_scheduling.logging_context import RequestIdFilter, set_request_id


def _config(**schedule_overrides) -> AppConfig:
    return AppConfig(schedule=ScheduleConfig(**schedule_overrides))


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    @pytest.mark.parametrize("start, end", [(20, 8), (8, 8), (-1, 20), (8, 25)])
    def test_invalid_working_window(self, start, end):
        with pytest.raises(ValueError, match="WORK_START_HOUR"):
            _validate_config(_config(work_start_hour=start, work_end_hour=end))

    def test_invalid_interval(self):
        with pytest.raises(ValueError, match="SLOT_INTERVAL_MINUTES"):
            _validate_config(_config(slot_interval_minutes=0))

    def test_interval_must_divide_window(self):
        with pytest.raises(ValueError, match="evenly divide"):
            _validate_config(_config(slot_interval_minutes=35))

    def test_open_after_close(self):
        with pytest.raises(ValueError, match="BUSINESS_OPEN"):
            _validate_config(_config(business_open="18:00", business_close="09:00"))

    def test_malformed_business_hours(self):
        with pytest.raises(ValueError, match="BUSINESS_CLOSE must be HH:MM"):
            _validate_config(_config(business_close="8pm"))

    def test_midnight_close_allowed(self):
        config = _config(business_close="24:00")
        _validate_config(config)
        assert config.schedule.business_close_minute == 1440

    def test_negative_horizon(self):
        with pytest.raises(ValueError, match="BOOKING_HORIZON_MONTHS_AHEAD"):
            _validate_config(_config(months_ahead=-1))

    def test_invalid_default_duration(self):
        with pytest.raises(ValueError, match="DEFAULT_APPOINTMENT_MINUTES"):
            _validate_config(_config(default_appointment_minutes=0))

    def test_safe_int_parsing(self):
        from clinic_scheduling.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_rejects_garbage(self, monkeypatch):
        from clinic_scheduling.config import _safe_int

        monkeypatch.setenv("SLOT_INTERVAL_MINUTES_TEST", "half-hour")
        with pytest.raises(ValueError, match="SLOT_INTERVAL_MINUTES_TEST"):
            _safe_int("SLOT_INTERVAL_MINUTES_TEST", "30")


class TestDefaults:
    def test_schedule_defaults(self):
        schedule = ScheduleConfig()
        assert schedule.business_open_minute == 480
        assert schedule.business_close_minute == 1200


class TestClinicTimezone:
    def test_unknown_timezone_rejected(self):
        config = AppConfig(clinic=ClinicConfig(timezone="Mars/Olympus_Mons"))
        with pytest.raises(ValueError, match="CLINIC_TIMEZONE"):
            _validate_config(config)

    def test_known_timezone_accepted(self):
        _validate_config(AppConfig(clinic=ClinicConfig(timezone="Asia/Ho_Chi_Minh")))


class TestLogFormat:
    def test_format_renders_request_id(self):
        set_request_id("BKREQ-fmt")
        record = logging.LogRecord("clinic", logging.INFO, __file__, 1, "Booking admitted", None, None)
        RequestIdFilter().filter(record)
        rendered = logging.Formatter(LOG_FORMAT).format(record)
        assert "[BKREQ-fmt]" in rendered
        assert rendered.endswith("INFO: Booking admitted")
