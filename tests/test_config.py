"""Tests for settings and logging setup."""

import logging

import pytest
import structlog
from pydantic import ValidationError

from py_citygen.config import Settings, settings
from py_citygen.core.city import CityGenerator, CityOptions
from py_citygen.core.growth_graph import GrowthGraph, GrowthOptions
from py_citygen.utils.log import configure_logging


@pytest.fixture
def restore_logging():
    """Undo logging configuration after a test."""
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    root.setLevel(level)


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        for name in ("CITYGEN_LOG_LEVEL", "CITYGEN_LOG_FORMAT", "CITYGEN_DEFAULT_SEED", "CITYGEN_MAX_STEPS"):
            monkeypatch.delenv(name, raising=False)
        fresh = Settings(_env_file=None)

        assert fresh.log_level == "INFO"
        assert fresh.log_format == "console"
        assert fresh.default_seed == "citygen"
        assert fresh.max_steps == 20000

    def test_environment_override(self, monkeypatch):
        """Test CITYGEN_ prefixed variables."""
        monkeypatch.setenv("CITYGEN_MAX_STEPS", "5")
        monkeypatch.setenv("CITYGEN_DEFAULT_SEED", "from_env")

        fresh = Settings(_env_file=None)
        assert fresh.max_steps == 5
        assert fresh.default_seed == "from_env"

    def test_invalid_environment(self, monkeypatch):
        """Test that a non-positive step limit is rejected."""
        monkeypatch.setenv("CITYGEN_MAX_STEPS", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_run_uses_step_limit(self, monkeypatch):
        """Test that run() falls back to the configured step limit."""
        monkeypatch.setattr(settings, "max_steps", 3)
        graph = GrowthGraph(GrowthOptions(probability=0.0, radius=100.0), seed="limit")
        graph.start(0, 0, num_lines=1)

        assert not graph.run()
        assert graph.steps == 3

        layout = CityGenerator(CityOptions(seeds=1, seed_spread=1.0), seed="limit").run()
        assert not layout.complete

    def test_default_seed(self, monkeypatch):
        """Test that generators fall back to the configured seed."""
        monkeypatch.setattr(settings, "default_seed", "configured")

        assert CityGenerator(CityOptions(seeds=1, seed_spread=1.0)).seed == "configured"


class TestLogging:
    """Test structlog configuration."""

    def test_configure_json(self, restore_logging):
        """Test JSON logging at an explicit level."""
        configure_logging(level="debug", fmt="json")

        assert structlog.is_configured()
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_from_settings(self, restore_logging, monkeypatch):
        """Test that defaults come from settings."""
        monkeypatch.setattr(settings, "log_level", "WARNING")
        configure_logging()

        assert logging.getLogger().level == logging.WARNING
