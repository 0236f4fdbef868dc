"""
In-process sensor platform.

Delivers periodic 3-axis samples on an asyncio event loop, the way a
mobile sensor API delivers listener callbacks. Used by the console
application and by the tests.
"""

import asyncio
import itertools
import logging
from collections import deque
from typing import Callable, Iterable

import numpy as np

from ..errors import SensorUnavailable
from ..utils.constants import SensorStream
from .models import SensorSample

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by SimulatedSensorSource.subscribe()."""

    _ids = itertools.count(1)

    def __init__(self, stream: SensorStream, period_ms: int, callback):
        self.id = next(self._ids)
        self.stream = stream
        self.period_ms = period_ms
        self.callback = callback
        self.timer: asyncio.TimerHandle | None = None
        self.active = True

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, stream={self.stream.value})"


class SimulatedSensorSource:
    """
    Simulated accelerometer and gyroscope.

    Samples are zero-mean gaussian noise on each axis; spikes queued with
    inject() replace the next periodic sample of their stream, and
    deliver() pushes a sample to the listeners immediately.
    """

    def __init__(
        self,
        noise_std: float = 0.3,
        periodic: bool = True,
        unavailable: Iterable[SensorStream] = (),
        seed: int | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Initialize simulated source.

        Args:
            noise_std: Standard deviation of per-axis noise
            periodic: Emit samples every period_ms on the event loop
            unavailable: Streams whose subscription fails
            seed: Seed for the noise generator
            loop: Event loop for periodic delivery (running loop if None)
        """
        self.noise_std = noise_std
        self.periodic = periodic
        self.unavailable = set(unavailable)
        self.rng = np.random.default_rng(seed)
        self.loop = loop

        self._subscriptions: dict[int, Subscription] = {}
        self._spikes: dict[SensorStream, deque] = {s: deque() for s in SensorStream}

    def subscribe(
        self,
        stream: SensorStream,
        period_ms: int,
        callback: Callable[[SensorSample], None],
    ) -> Subscription:
        """Register a listener on a stream."""
        if stream in self.unavailable:
            raise SensorUnavailable(stream)

        sub = Subscription(stream, period_ms, callback)
        self._subscriptions[sub.id] = sub

        if self.periodic:
            self._schedule(sub)

        logger.debug(f"Listener added: {sub}")
        return sub

    def unsubscribe(self, handle: Subscription):
        """Remove a listener."""
        handle.active = False
        if handle.timer is not None:
            handle.timer.cancel()
            handle.timer = None
        self._subscriptions.pop(handle.id, None)
        logger.debug(f"Listener removed: {handle}")

    def listener_count(self, stream: SensorStream | None = None) -> int:
        """Number of live listeners, optionally for one stream."""
        return sum(
            1
            for sub in self._subscriptions.values()
            if stream is None or sub.stream == stream
        )

    def inject(self, stream: SensorStream, x: float, y: float, z: float):
        """Queue a reading to replace the next periodic sample of a stream."""
        self._spikes[stream].append((x, y, z))

    def deliver(self, stream: SensorStream, x: float, y: float, z: float):
        """Push a reading to every listener of a stream right now."""
        sample = SensorSample(x, y, z, stream, self._now())
        for sub in list(self._subscriptions.values()):
            if sub.stream == stream and sub.active:
                sub.callback(sample)

    def _now(self) -> float:
        if self.loop is not None:
            return self.loop.time()
        try:
            return asyncio.get_running_loop().time()
        except RuntimeError:
            return 0.0

    def _schedule(self, sub: Subscription):
        if self.loop is None:
            self.loop = asyncio.get_running_loop()
        sub.timer = self.loop.call_later(sub.period_ms / 1000.0, self._tick, sub)

    def _tick(self, sub: Subscription):
        if not sub.active:
            return

        spikes = self._spikes[sub.stream]
        if spikes:
            x, y, z = spikes.popleft()
        else:
            x, y, z = self.rng.normal(0.0, self.noise_std, 3)

        sub.callback(SensorSample(float(x), float(y), float(z), sub.stream, self._now()))

        if sub.active:
            self._schedule(sub)
