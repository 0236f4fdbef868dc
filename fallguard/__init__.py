"""
Fall monitor using motion sensors.

This package provides a modular fall monitor with the following components:
- Sensor sampling of accelerometer and gyroscope streams
- Fixed-threshold impact detection
- Cancellable confirmation state machine
- Alert presenters and location provider
"""

from .detectors.impact_detector import ImpactDetector, ImpactSignal
from .events.monitor import FallMonitor
from .events.state_machine import FallStateMachine
from .location.provider import UNAVAILABLE, Coordinates, LocationProvider
from .utils.constants import (
    DEFAULT_IMPACT_THRESHOLDS,
    DEFAULT_MONITOR_CONFIG,
    FallPhase,
    SensorStream,
)

__version__ = "1.0.0"

__all__ = [
    "FallMonitor",
    "FallStateMachine",
    "ImpactDetector",
    "ImpactSignal",
    "LocationProvider",
    "Coordinates",
    "UNAVAILABLE",
    "FallPhase",
    "SensorStream",
    "DEFAULT_IMPACT_THRESHOLDS",
    "DEFAULT_MONITOR_CONFIG",
]
