"""Tests for environment-driven configuration."""

import pytest

from fallguard.config import Settings
from fallguard.utils.constants import SensorStream

ENV_KEYS = [
    "ACCEL_THRESHOLD",
    "GYRO_THRESHOLD",
    "SAMPLING_PERIOD_MS",
    "CONFIRMATION_WINDOW_MS",
    "DISABLED_SENSORS",
    "LOCATION_PERMISSION",
    "LOCATION_LATITUDE",
    "LOCATION_LONGITUDE",
    "ALERT_WEBHOOK_URL",
    "API_RETRY_ATTEMPTS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))


def test_defaults(tmp_path):
    settings = Settings()
    assert settings.ACCEL_THRESHOLD == 2.5
    assert settings.GYRO_THRESHOLD == 3.0
    assert settings.SAMPLING_PERIOD_MS == 500
    assert settings.CONFIRMATION_WINDOW_MS == 3000
    assert settings.LOCATION_PERMISSION is True
    assert settings.DISABLED_SENSORS == ()
    assert (tmp_path / "logs").is_dir()


def test_overrides(monkeypatch):
    monkeypatch.setenv("ACCEL_THRESHOLD", "4.0")
    monkeypatch.setenv("CONFIRMATION_WINDOW_MS", "5000")
    monkeypatch.setenv("LOCATION_PERMISSION", "denied")
    monkeypatch.setenv("LOCATION_LATITUDE", "51.5")
    monkeypatch.setenv("LOCATION_LONGITUDE", "-0.12")
    monkeypatch.setenv("DISABLED_SENSORS", "Gyroscope, compass")

    settings = Settings()
    assert settings.ACCEL_THRESHOLD == 4.0
    assert settings.CONFIRMATION_WINDOW_MS == 5000
    assert settings.LOCATION_PERMISSION is False
    assert (settings.LOCATION_LATITUDE, settings.LOCATION_LONGITUDE) == (51.5, -0.12)
    assert settings.DISABLED_SENSORS == (SensorStream.GYROSCOPE,)


@pytest.mark.parametrize(
    "key, value, attr, expected",
    [
        ("ACCEL_THRESHOLD", "abc", "ACCEL_THRESHOLD", 2.5),
        ("GYRO_THRESHOLD", "-1", "GYRO_THRESHOLD", 3.0),
        ("SAMPLING_PERIOD_MS", "0", "SAMPLING_PERIOD_MS", 500),
        ("CONFIRMATION_WINDOW_MS", "soon", "CONFIRMATION_WINDOW_MS", 3000),
        ("API_RETRY_ATTEMPTS", "0", "API_RETRY_ATTEMPTS", 1),
    ],
)
def test_invalid_values_fall_back(monkeypatch, key, value, attr, expected):
    monkeypatch.setenv(key, value)
    assert getattr(Settings(), attr) == expected


def test_half_configured_location_is_ignored(monkeypatch):
    monkeypatch.setenv("LOCATION_LATITUDE", "10.0")
    settings = Settings()
    assert settings.LOCATION_LATITUDE is None
    assert settings.LOCATION_LONGITUDE is None
