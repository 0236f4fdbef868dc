"""
Utility modules for the fall monitor.
"""

from .constants import (
    DEFAULT_IMPACT_THRESHOLDS,
    DEFAULT_MONITOR_CONFIG,
    AlertMessages,
    FallPhase,
    Markers,
    SensorStream,
)

__all__ = [
    "SensorStream",
    "FallPhase",
    "DEFAULT_IMPACT_THRESHOLDS",
    "DEFAULT_MONITOR_CONFIG",
    "AlertMessages",
    "Markers",
]
