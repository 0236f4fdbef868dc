"""
Constants and default configurations for the fall monitor.
"""

from enum import Enum


class SensorStream(str, Enum):
    """Motion streams sampled by the monitor."""

    ACCELEROMETER = "accelerometer"
    GYROSCOPE = "gyroscope"


class FallPhase(str, Enum):
    """Phases of one fall episode."""

    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"


# Impact thresholds on sample magnitude
# accelerometer: m/s^2, gyroscope: rad/s
DEFAULT_IMPACT_THRESHOLDS = {
    SensorStream.ACCELEROMETER: 2.5,
    SensorStream.GYROSCOPE: 3.0,
}


# Default Configuration for the monitoring session
DEFAULT_MONITOR_CONFIG = {
    "sampling_period_ms": 500,
    "confirmation_window_ms": 3000,
}


# Texts shown to the user, mirroring the mobile UI
class AlertMessages:
    """User-facing alert texts."""

    PENDING = "Fall detected. Cancel within 3 seconds?"
    DISMISSED = "Fall alert cancelled."
    EMERGENCY_TITLE = "Fall Detected"
    EMERGENCY_BODY = "No response received. Emergency alert triggered."
    PERMISSION_DENIED = "Permission to access location was denied"
    LOCATION_UNKNOWN = "Location unknown"


# Map markers for the debug readout
class Markers:
    """Marker descriptions (pin color, title)."""

    USER = ("blue", "You are here")
    EMERGENCY = ("red", "Emergency Location")
