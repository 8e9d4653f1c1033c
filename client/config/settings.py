"""
Waterfall client settings (pydantic-settings v2).

Each section reads its own HAMSHACK_<SECTION>_ environment variables, e.g.
HAMSHACK_STREAM_ENDPOINT=ws://pi.local:3000/ws or HAMSHACK_DISPLAY_WIDTH=1024.
Defaults target a HamShack backend on localhost:3000.

Usage:
    from config.settings import get_settings
    settings = get_settings()
    print(settings.stream.endpoint)
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StreamSettings(BaseSettings):
    """Push-stream (SSE or WebSocket) connection configuration."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_STREAM_")

    endpoint: str = Field(
        default="http://localhost:3000/api/sse",
        description="Push-stream URL (http/https for SSE, ws/wss for WebSocket)",
    )
    backoff_initial_s: float = Field(default=0.5, gt=0.0, description="First reconnect delay")
    backoff_max_s: float = Field(default=10.0, gt=0.0, description="Reconnect delay ceiling")
    connect_timeout_s: float = Field(default=5.0, gt=0.0, description="Handshake timeout")
    read_timeout_s: float = Field(
        default=30.0, ge=0.0, description="Idle read timeout before reconnect (0 = never)"
    )

    @model_validator(mode="after")
    def _check_backoff(self):
        if self.backoff_max_s < self.backoff_initial_s:
            raise ValueError("backoff_max_s must be >= backoff_initial_s")
        return self


class ControlSettings(BaseSettings):
    """Device-control HTTP service configuration."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_CONTROL_")

    base_url: str = Field(default="http://localhost:3000", description="Control service root")
    timeout_s: float = Field(default=5.0, gt=0.0, description="Per-command timeout")
    presets_hz: list[int] = Field(
        default=[14_200_000, 7_100_000], description="Quick-tune frequencies (20m, 40m)"
    )


class HealthSettings(BaseSettings):
    """Health endpoint polling."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_HEALTH_")

    enabled: bool = Field(default=True, description="Poll /api/health while watching")
    interval_s: float = Field(default=5.0, gt=0.0, description="Poll period")


class DisplaySettings(BaseSettings):
    """Waterfall surface configuration."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_DISPLAY_")

    width: int = Field(default=800, ge=16, description="Surface width in pixels")
    height: int = Field(default=200, ge=16, description="Surface height in pixels")
    tick_interval_ms: int = Field(default=100, gt=0, description="Render period")
    floor_db: float = Field(default=-100.0, description="dBFS mapped to zero bar height")
    ceiling_db: float = Field(default=0.0, description="dBFS mapped to full bar height")

    @model_validator(mode="after")
    def _check_range(self):
        if self.ceiling_db <= self.floor_db:
            raise ValueError("ceiling_db must be greater than floor_db")
        return self


class SimulationSettings(BaseSettings):
    """Synthetic spectrum generator (used when no device data is streamed)."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_SIM_")

    enabled: bool = Field(default=False, description="Feed simulated spectra while running")
    bins: int = Field(default=256, ge=1, description="Bins per simulated sample")
    interval_ms: int = Field(default=100, gt=0, description="Sample period")
    seed: int | None = Field(default=None, description="RNG seed for reproducible runs")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_LOG_")

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    json_format: bool = Field(default=False, description="Structured JSON log lines")
    file_enabled: bool = Field(default=True, description="Enable file logging")


class Settings(BaseSettings):
    """Root settings combining all sub-settings."""

    model_config = SettingsConfigDict(env_prefix="HAMSHACK_", env_nested_delimiter="__")

    stream: StreamSettings = Field(default_factory=StreamSettings)
    control: ControlSettings = Field(default_factory=ControlSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = Field(default=False, description="Enable debug mode")


# Global singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, built on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Re-read the environment and replace the cached settings."""
    global _settings
    _settings = Settings()
    return _settings
