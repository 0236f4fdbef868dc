"""
Sensor sampler: subscribes to the motion streams and forwards magnitudes.
"""

import logging
from typing import Any, Callable, Iterable, Protocol

from ..errors import SensorUnavailable
from ..utils.constants import DEFAULT_MONITOR_CONFIG, SensorStream
from .models import SensorSample

logger = logging.getLogger(__name__)

MagnitudeSink = Callable[[SensorStream, float], None]


class SensorSource(Protocol):
    """Platform sensor API."""

    def subscribe(
        self,
        stream: SensorStream,
        period_ms: int,
        callback: Callable[[SensorSample], None],
    ) -> Any: ...

    def unsubscribe(self, handle: Any) -> None: ...


class SensorSampler:
    """
    Owns the sensor subscriptions of one monitoring session.

    Subscriptions are scoped resources: they are acquired by start(),
    released by stop(), and released then re-acquired by reconfigure().
    The sampler never reads or writes fall state; it only computes the
    magnitude of each delivered sample and hands (stream, magnitude) to
    the sink.
    """

    def __init__(
        self,
        source: SensorSource,
        sink: MagnitudeSink,
        period_ms: int = DEFAULT_MONITOR_CONFIG["sampling_period_ms"],
        streams: Iterable[SensorStream] = (
            SensorStream.ACCELEROMETER,
            SensorStream.GYROSCOPE,
        ),
        on_error: Callable[[Exception], None] | None = None,
    ):
        """
        Initialize sampler.

        Args:
            source: Sensor platform implementing subscribe/unsubscribe
            sink: Receives (stream, magnitude) for every sample
            period_ms: Sampling period requested from the platform
            streams: Streams to subscribe
            on_error: Optional callback for degraded-stream reports
        """
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")

        self.source = source
        self.sink = sink
        self.period_ms = period_ms
        self.streams = tuple(streams)
        self.on_error = on_error

        self._handles: dict[SensorStream, Any] = {}
        self.samples_received = 0

        logger.info(
            f"Initialized SensorSampler: period={period_ms}ms, "
            f"streams={[s.value for s in self.streams]}"
        )

    @property
    def active_streams(self) -> list[SensorStream]:
        """Streams with a live subscription."""
        return list(self._handles)

    @property
    def running(self) -> bool:
        return bool(self._handles)

    def start(self):
        """
        Subscribe to every configured stream.

        A stream that fails with SensorUnavailable is reported and skipped;
        detection continues on the remaining stream.

        Raises:
            SensorUnavailable: If no stream could be subscribed
        """
        if self._handles:
            logger.debug("Sampler already started, releasing old subscriptions")
            self.stop()

        try:
            for stream in self.streams:
                try:
                    handle = self.source.subscribe(
                        stream, self.period_ms, self._make_callback(stream)
                    )
                except SensorUnavailable as e:
                    logger.warning(f"Sensor stream unavailable: {e}")
                    if self.on_error:
                        self.on_error(e)
                    continue

                self._handles[stream] = handle
                logger.info(f"Subscribed to {stream.value} @ {self.period_ms}ms")
        except Exception:
            self.stop()
            raise

        if not self._handles:
            raise SensorUnavailable(message="No motion stream could be started")

        if len(self._handles) < len(self.streams):
            logger.warning(
                f"Running on {len(self._handles)}/{len(self.streams)} streams: "
                f"{[s.value for s in self._handles]}"
            )

    def stop(self):
        """Unsubscribe every stream. Safe to call more than once."""
        handles = list(self._handles.items())
        self._handles.clear()

        errors = []
        for stream, handle in handles:
            try:
                self.source.unsubscribe(handle)
                logger.info(f"Unsubscribed from {stream.value}")
            except Exception as e:
                logger.error(f"Failed to unsubscribe from {stream.value}: {e}")
                errors.append(e)

        if errors:
            raise errors[0]

    def reconfigure(self, period_ms: int):
        """
        Change the sampling period.

        Args:
            period_ms: New sampling period in milliseconds
        """
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")

        was_running = self.running
        self.stop()
        self.period_ms = period_ms
        logger.info(f"Sampling period changed to {period_ms}ms")
        if was_running:
            self.start()

    def _make_callback(self, stream: SensorStream) -> Callable[[SensorSample], None]:
        def _on_sample(sample: SensorSample):
            self.samples_received += 1
            self.sink(stream, sample.magnitude)

        return _on_sample

    def __enter__(self) -> "SensorSampler":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def __repr__(self) -> str:
        return (
            f"SensorSampler(period={self.period_ms}ms, "
            f"active={[s.value for s in self._handles]}, "
            f"samples={self.samples_received})"
        )
