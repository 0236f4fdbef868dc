"""Shared fixtures: manual clock, recording presenter, sensor and location stubs."""

import asyncio

import pytest

from fallguard.location import LocationProvider, StaticLocationSource
from fallguard.sensors import SimulatedSensorSource


class ManualTimer:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic clock: timers fire only when advance() passes them."""

    def __init__(self):
        self.time = 0.0
        self.timers: list[ManualTimer] = []

    def now(self):
        return self.time

    def call_later(self, delay, callback, *args):
        timer = ManualTimer(self.time + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def armed(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds):
        target = self.time + seconds
        while True:
            due = [t for t in self.armed if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.time = timer.when
            timer.fired = True
            timer.callback(*timer.args)
        self.time = target


class FailingScheduler:
    def now(self):
        return 0.0

    def call_later(self, delay, callback, *args):
        raise RuntimeError("can't start new timer")


class RecordingPresenter:
    """AlertPresenter that records every call."""

    def __init__(self):
        self.calls = []

    def show_pending(self):
        self.calls.append(("show_pending",))

    def dismiss_pending(self):
        self.calls.append(("dismiss_pending",))

    def raise_emergency(self, location):
        self.calls.append(("raise_emergency", location))

    def report_error(self, error):
        self.calls.append(("report_error", error))

    def names(self):
        return [call[0] for call in self.calls]

    def emergencies(self):
        return [call[1] for call in self.calls if call[0] == "raise_emergency"]

    def errors(self):
        return [call[1] for call in self.calls if call[0] == "report_error"]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def sensor_source():
    return SimulatedSensorSource(periodic=False)


@pytest.fixture
def location_provider():
    provider = LocationProvider(StaticLocationSource(52.52, 13.405))
    asyncio.run(provider.refresh())
    return provider
