"""Device-control side channel: commands and health polling."""

from .client import ControlClient, validate_frequency
from .health import HealthMonitor

__all__ = ["ControlClient", "HealthMonitor", "validate_frequency"]
