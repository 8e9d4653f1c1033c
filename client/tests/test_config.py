"""
Configuration Tests - Validate settings and environment overrides.

Tests for pydantic-settings configuration system.
"""

import os
import sys
from pathlib import Path

import pytest

CLIENT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(CLIENT_DIR))


def _with_env(name, value, fn):
    original = os.environ.get(name)
    os.environ[name] = value
    try:
        return fn()
    finally:
        if original is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = original


class TestSettingsValidation:
    """Test configuration validation rules."""

    def test_backoff_defaults_sensible(self):
        """First reconnect delay must not exceed the ceiling."""
        from config.settings import StreamSettings

        settings = StreamSettings()
        assert 0 < settings.backoff_initial_s <= settings.backoff_max_s

    def test_backoff_ceiling_below_initial_rejected(self):
        from pydantic import ValidationError

        from config.settings import StreamSettings

        with pytest.raises(ValidationError):
            StreamSettings(backoff_initial_s=5.0, backoff_max_s=1.0)

    def test_display_range_must_be_increasing(self):
        from pydantic import ValidationError

        from config.settings import DisplaySettings

        with pytest.raises(ValidationError):
            DisplaySettings(floor_db=0.0, ceiling_db=-100.0)

    def test_display_defaults(self):
        from config.settings import DisplaySettings

        settings = DisplaySettings()
        assert (settings.width, settings.height) == (800, 200)
        assert settings.tick_interval_ms == 100
        assert (settings.floor_db, settings.ceiling_db) == (-100.0, 0.0)

    def test_tiny_surface_rejected(self):
        from pydantic import ValidationError

        from config.settings import DisplaySettings

        with pytest.raises(ValidationError):
            DisplaySettings(width=4)

    def test_simulation_defaults(self):
        from config.settings import SimulationSettings

        settings = SimulationSettings()
        assert settings.enabled is False
        assert settings.bins == 256
        assert settings.interval_ms == 100

    def test_health_poll_period(self):
        from config.settings import HealthSettings

        assert HealthSettings().interval_s == 5.0


class TestEnvironmentOverrides:
    """Test environment variable overrides."""

    def test_override_stream_endpoint(self):
        """Environment variable should override the push-stream URL."""
        from config.settings import reload_settings

        settings = _with_env("HAMSHACK_STREAM_ENDPOINT", "ws://pi.local:3000/ws", reload_settings)
        assert settings.stream.endpoint == "ws://pi.local:3000/ws"
        reload_settings()

    def test_override_backoff_ceiling(self):
        from config.settings import reload_settings

        settings = _with_env("HAMSHACK_STREAM_BACKOFF_MAX_S", "2.5", reload_settings)
        assert settings.stream.backoff_max_s == 2.5
        reload_settings()

    def test_override_presets_json(self):
        """List settings are read as JSON."""
        from config.settings import reload_settings

        settings = _with_env("HAMSHACK_CONTROL_PRESETS_HZ", "[3573000, 28074000]", reload_settings)
        assert settings.control.presets_hz == [3_573_000, 28_074_000]
        reload_settings()

    def test_override_simulation_seed(self):
        from config.settings import reload_settings

        settings = _with_env("HAMSHACK_SIM_SEED", "42", reload_settings)
        assert settings.simulation.seed == 42
        reload_settings()


class TestSingleton:
    """Test the settings singleton."""

    def test_get_settings_cached(self):
        from config.settings import get_settings

        assert get_settings() is get_settings()

    def test_reload_replaces_instance(self):
        from config.settings import get_settings, reload_settings

        before = get_settings()
        after = reload_settings()
        assert after is not before
        assert get_settings() is after
