"""Alert presentation for the fall monitor."""

from .presenter import (
    AlertPresenter,
    AlertPresenterGroup,
    LoggingAlertPresenter,
    describe_location,
)
from .webhook import WebhookAlertPresenter

__all__ = [
    "AlertPresenter",
    "AlertPresenterGroup",
    "LoggingAlertPresenter",
    "WebhookAlertPresenter",
    "describe_location",
]
