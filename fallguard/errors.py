"""
Error taxonomy for the fall monitor.

None of these errors is meant to crash the host process: the monitor
catches them at its boundaries, logs them and reports them to the
alert presenter.
"""


class FallGuardError(Exception):
    """Base class for all fall monitor errors."""


class PermissionDenied(FallGuardError):
    """Location permission was refused by the user or the platform."""

    def __init__(self, message: str = "Permission to access location was denied"):
        super().__init__(message)


class SensorUnavailable(FallGuardError):
    """A motion stream could not be started."""

    def __init__(self, stream=None, message: str | None = None):
        self.stream = stream
        if message is None:
            name = stream.value if stream is not None else "sensor"
            message = f"{name} stream is unavailable"
        super().__init__(message)


class LocationUnavailable(FallGuardError):
    """A one-shot location fix failed or timed out."""


class SchedulingFailure(FallGuardError):
    """The confirmation countdown could not be armed."""
