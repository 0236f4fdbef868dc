"""
Alert presentation for the fall monitor.

Presenters are fire-and-forget: every call returns immediately and none
of them gets a handle on the fall state.
"""

import logging
from typing import Iterable, Protocol

from ..location.provider import Coordinates, LocationUnavailableMarker
from ..utils.constants import AlertMessages

logger = logging.getLogger(__name__)


class AlertPresenter(Protocol):
    """UI notification surface used by the state machine."""

    def show_pending(self) -> None: ...

    def dismiss_pending(self) -> None: ...

    def raise_emergency(
        self, location: Coordinates | LocationUnavailableMarker
    ) -> None: ...

    def report_error(self, error: Exception) -> None: ...


def describe_location(location: Coordinates | LocationUnavailableMarker) -> str:
    """Human-readable location for alert texts."""
    if isinstance(location, Coordinates):
        return f"{location.latitude:.5f}, {location.longitude:.5f}"
    return AlertMessages.LOCATION_UNKNOWN


class LoggingAlertPresenter:
    """Console presenter (headless mode): renders alerts as log records."""

    def __init__(self, name: str = "fallguard.alerts"):
        self.alert_logger = logging.getLogger(name)

    def show_pending(self):
        self.alert_logger.warning(f"⚠ {AlertMessages.PENDING} (type 'cancel')")

    def dismiss_pending(self):
        self.alert_logger.info(AlertMessages.DISMISSED)

    def raise_emergency(self, location):
        self.alert_logger.critical(
            f"🚨 {AlertMessages.EMERGENCY_TITLE}: {AlertMessages.EMERGENCY_BODY} "
            f"Location: {describe_location(location)}"
        )

    def report_error(self, error):
        self.alert_logger.error(f"Monitor error: {error}")


class AlertPresenterGroup:
    """Fans every call out to several presenters."""

    def __init__(self, presenters: Iterable[AlertPresenter]):
        self.presenters = list(presenters)

    def _each(self, method: str, *args):
        for presenter in self.presenters:
            try:
                getattr(presenter, method)(*args)
            except Exception as e:
                logger.error(
                    f"{type(presenter).__name__}.{method} failed: {e}", exc_info=True
                )

    def show_pending(self):
        self._each("show_pending")

    def dismiss_pending(self):
        self._each("dismiss_pending")

    def raise_emergency(self, location):
        self._each("raise_emergency", location)

    def report_error(self, error):
        self._each("report_error", error)

    async def close(self):
        for presenter in self.presenters:
            close = getattr(presenter, "close", None)
            if close is not None:
                await close()
