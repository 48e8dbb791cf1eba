"""Single-price deviation monitor with email and Discord alerts."""

from .analyzer import AlertEvent, DeviationResult, compute_deviation_percent, should_alert
from .config import ConfigurationError, MonitorConfig, load_config
from .monitor import DeviationMonitor, MonitorState

__all__ = [
    "AlertEvent",
    "DeviationResult",
    "compute_deviation_percent",
    "should_alert",
    "ConfigurationError",
    "MonitorConfig",
    "load_config",
    "DeviationMonitor",
    "MonitorState",
]
