"""Tests for environment-driven settings and logging setup."""

import logging
from datetime import time

from workplan.settings import PlannerSettings, configure_logging


class TestPlannerSettings:
    def test_defaults_match_config(self, monkeypatch):
        monkeypatch.delenv("WORKPLAN_PLAN_DAYS", raising=False)
        config = PlannerSettings(_env_file=None).to_config()
        assert config.plan_days == 7
        assert config.gps_radius_meters == 500
        assert config.default_start_time == time(9, 0)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WORKPLAN_GPS_RADIUS_METERS", "250")
        monkeypatch.setenv("WORKPLAN_DEFAULT_START_TIME", "07:30")
        monkeypatch.setenv("WORKPLAN_LOG_LEVEL", "debug")
        settings = PlannerSettings(_env_file=None)
        config = settings.to_config()
        assert config.gps_radius_meters == 250
        assert config.default_start_time == time(7, 30)
        assert settings.log_level == "debug"


class TestConfigureLogging:
    def test_idempotent(self):
        logger = configure_logging("DEBUG")
        configure_logging("INFO")
        handlers = [h for h in logger.handlers if h.get_name() == "workplan"]
        assert len(handlers) == 1
        assert logger.level == logging.INFO
