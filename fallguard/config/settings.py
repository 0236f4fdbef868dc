"""
Configuration management for the fall monitor.
Loads settings from environment variables with the app's defaults.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from ..utils.constants import (
    DEFAULT_IMPACT_THRESHOLDS,
    DEFAULT_MONITOR_CONFIG,
    SensorStream,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Settings:
    """
    Centralized configuration management.
    All settings can be overridden via environment variables.
    """

    def __init__(self):
        # Detection settings
        self.ACCEL_THRESHOLD: float = self._parse_float(
            "ACCEL_THRESHOLD", DEFAULT_IMPACT_THRESHOLDS[SensorStream.ACCELEROMETER]
        )
        self.GYRO_THRESHOLD: float = self._parse_float(
            "GYRO_THRESHOLD", DEFAULT_IMPACT_THRESHOLDS[SensorStream.GYROSCOPE]
        )
        self.SAMPLING_PERIOD_MS: int = self._parse_int(
            "SAMPLING_PERIOD_MS", DEFAULT_MONITOR_CONFIG["sampling_period_ms"]
        )
        self.CONFIRMATION_WINDOW_MS: int = self._parse_int(
            "CONFIRMATION_WINDOW_MS", DEFAULT_MONITOR_CONFIG["confirmation_window_ms"]
        )

        # Simulated sensors
        self.SENSOR_NOISE: float = self._parse_float("SENSOR_NOISE", 0.3)
        self.DISABLED_SENSORS: tuple[SensorStream, ...] = self._parse_streams(
            os.getenv("DISABLED_SENSORS", "")
        )

        # Location settings
        self.LOCATION_PERMISSION: bool = (
            os.getenv("LOCATION_PERMISSION", "granted").lower() == "granted"
        )
        self.LOCATION_LATITUDE: float | None = self._parse_optional_float(
            "LOCATION_LATITUDE"
        )
        self.LOCATION_LONGITUDE: float | None = self._parse_optional_float(
            "LOCATION_LONGITUDE"
        )
        self.LOCATION_ENDPOINT: str = os.getenv("LOCATION_ENDPOINT", "")
        self.LOCATION_TIMEOUT: int = self._parse_int("LOCATION_TIMEOUT", 10)

        # Alert webhook settings
        self.ALERT_WEBHOOK_URL: str = os.getenv("ALERT_WEBHOOK_URL", "")
        self.DEVICE_UID: str = os.getenv("DEVICE_UID", "")
        self.API_KEY: str = os.getenv("API_KEY", "")
        self.API_TIMEOUT: int = self._parse_int("API_TIMEOUT", 30)  # seconds
        self.API_RETRY_ATTEMPTS: int = self._parse_int("API_RETRY_ATTEMPTS", 3)
        self.API_RETRY_DELAYS: tuple[int, ...] = (1, 2, 4)  # exponential backoff

        # Logging
        self.LOG_DIR: Path = Path(os.getenv("LOG_DIR", "./logs"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Validate critical settings
        self._validate()

    def _parse_int(self, name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Invalid {name}: {raw!r}, using {default}")
            return default

    def _parse_float(self, name: str, default: float) -> float:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Invalid {name}: {raw!r}, using {default}")
            return default

    def _parse_optional_float(self, name: str) -> float | None:
        raw = os.getenv(name, "")
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Invalid {name}: {raw!r}, ignoring")
            return None

    def _parse_streams(self, streams_str: str) -> tuple[SensorStream, ...]:
        """
        Parse a comma separated stream list like 'gyroscope,accelerometer'.

        Args:
            streams_str: Stream names, case insensitive

        Returns:
            Tuple of recognized streams
        """
        streams = []
        for name in streams_str.split(","):
            name = name.strip().lower()
            if not name:
                continue
            try:
                streams.append(SensorStream(name))
            except ValueError:
                logger.warning(f"Unknown sensor stream in DISABLED_SENSORS: {name}")
        return tuple(streams)

    def _validate(self):
        """Validate critical configuration settings."""
        if not self.ALERT_WEBHOOK_URL:
            logger.warning(
                "ALERT_WEBHOOK_URL not set - alerts will only be shown locally"
            )

        # Validate numeric ranges
        default_accel = DEFAULT_IMPACT_THRESHOLDS[SensorStream.ACCELEROMETER]
        if self.ACCEL_THRESHOLD <= 0:
            logger.warning(
                f"Invalid ACCEL_THRESHOLD: {self.ACCEL_THRESHOLD}, using {default_accel}"
            )
            self.ACCEL_THRESHOLD = default_accel

        default_gyro = DEFAULT_IMPACT_THRESHOLDS[SensorStream.GYROSCOPE]
        if self.GYRO_THRESHOLD <= 0:
            logger.warning(
                f"Invalid GYRO_THRESHOLD: {self.GYRO_THRESHOLD}, using {default_gyro}"
            )
            self.GYRO_THRESHOLD = default_gyro

        for name in ("SAMPLING_PERIOD_MS", "CONFIRMATION_WINDOW_MS"):
            default = DEFAULT_MONITOR_CONFIG[name.lower()]
            if getattr(self, name) <= 0:
                logger.warning(f"Invalid {name}: {getattr(self, name)}, using {default}")
                setattr(self, name, default)

        if self.API_RETRY_ATTEMPTS < 1:
            logger.warning(f"Invalid API_RETRY_ATTEMPTS: {self.API_RETRY_ATTEMPTS}, using 1")
            self.API_RETRY_ATTEMPTS = 1

        if (self.LOCATION_LATITUDE is None) != (self.LOCATION_LONGITUDE is None):
            logger.warning(
                "Only one of LOCATION_LATITUDE/LOCATION_LONGITUDE set, ignoring both"
            )
            self.LOCATION_LATITUDE = None
            self.LOCATION_LONGITUDE = None

        if len(self.DISABLED_SENSORS) == len(SensorStream):
            logger.warning("All sensor streams disabled - monitoring cannot start")

        # Create directories if they don't exist
        self.LOG_DIR.mkdir(parents=True, exist_ok=True)

        logger.info("Configuration validated successfully")

    def log_config(self):
        """Log current configuration (for debugging)."""
        logger.info("=" * 60)
        logger.info("Fall Monitor Configuration")
        logger.info("=" * 60)
        logger.info(f"Accelerometer Threshold: {self.ACCEL_THRESHOLD}")
        logger.info(f"Gyroscope Threshold: {self.GYRO_THRESHOLD}")
        logger.info(f"Sampling Period: {self.SAMPLING_PERIOD_MS}ms")
        logger.info(f"Confirmation Window: {self.CONFIRMATION_WINDOW_MS}ms")
        logger.info(
            f"Disabled Sensors: "
            f"{', '.join(s.value for s in self.DISABLED_SENSORS) or 'none'}"
        )
        logger.info(
            f"Location Permission: {'granted' if self.LOCATION_PERMISSION else 'denied'}"
        )
        if self.LOCATION_LATITUDE is not None:
            logger.info(
                f"Static Location: {self.LOCATION_LATITUDE}, {self.LOCATION_LONGITUDE}"
            )
        logger.info(f"Location Endpoint: {self.LOCATION_ENDPOINT or 'NOT SET'}")
        logger.info(f"Alert Webhook: {self.ALERT_WEBHOOK_URL or 'NOT SET'}")
        logger.info(f"Log Dir: {self.LOG_DIR}")
        logger.info("=" * 60)


# Singleton instance
_settings_instance = None


def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Returns:
        Settings instance with current configuration
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
