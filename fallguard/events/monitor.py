"""
Fall monitor: one monitoring session.
Serializes sensor signals, user cancels and deadline expiries onto one queue.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field

from ..detectors.impact_detector import ImpactDetector, ImpactSignal
from ..errors import PermissionDenied, SchedulingFailure
from ..location.provider import Coordinates
from ..sensors.sampler import SensorSampler
from ..utils.constants import DEFAULT_MONITOR_CONFIG, Markers, SensorStream
from .state_machine import DeadlineToken, FallStateMachine, LoopScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImpactObserved:
    signal: ImpactSignal


@dataclass(frozen=True)
class UserCancel:
    requested_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class DeadlineElapsed:
    token: DeadlineToken


@dataclass(frozen=True)
class ManualReset:
    pass


class FallMonitor:
    """
    Runs fall detection for one monitoring session.

    Architecture:
    - Sensor callbacks evaluate each magnitude and queue impact signals
    - The UI queues cancels (and resets) via cancel() / reset()
    - The confirmation timer queues its expiry
    - One processor coroutine applies queued events to the state machine
      in arrival order, each transition running without suspension

    The only reordering is the tie-break between a deadline and a cancel
    that are queued together: the cancel is applied first, so a late but
    simultaneous cancel never yields an emergency.
    """

    def __init__(
        self,
        sensor_source,
        presenter,
        location_provider=None,
        detector: ImpactDetector | None = None,
        sampling_period_ms: int = DEFAULT_MONITOR_CONFIG["sampling_period_ms"],
        confirmation_window_ms: int = DEFAULT_MONITOR_CONFIG["confirmation_window_ms"],
        streams=(SensorStream.ACCELEROMETER, SensorStream.GYROSCOPE),
        scheduler: LoopScheduler | None = None,
    ):
        """
        Initialize monitor.

        Args:
            sensor_source: Sensor platform implementing subscribe/unsubscribe
            presenter: AlertPresenter for pending, dismissed and emergency alerts
            location_provider: LocationProvider, or None to run without location
            detector: ImpactDetector (default thresholds if None)
            sampling_period_ms: Sensor sampling period
            confirmation_window_ms: Time the user has to cancel
            streams: Motion streams to sample
            scheduler: Deadline scheduler (running event loop if None)
        """
        self.presenter = presenter
        self.location_provider = location_provider
        self.detector = detector or ImpactDetector()

        self.queue: asyncio.Queue = asyncio.Queue()

        self.state_machine = FallStateMachine(
            presenter=presenter,
            location_provider=location_provider,
            scheduler=scheduler or LoopScheduler(),
            confirmation_window_ms=confirmation_window_ms,
            deadline_sink=lambda token: self._post(DeadlineElapsed(token)),
        )
        self.sampler = SensorSampler(
            source=sensor_source,
            sink=self._on_magnitude,
            period_ms=sampling_period_ms,
            streams=streams,
            on_error=self._report_error,
        )

        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread_id: int | None = None
        self.location_task: asyncio.Task | None = None

        # Statistics
        self.total_signals = 0
        self.total_episodes = 0
        self.total_cancelled = 0
        self.total_confirmed = 0
        self.total_errors = 0
        self.started_at: float | None = None

        self.running = False

        logger.info(
            f"Initialized FallMonitor: sampling={sampling_period_ms}ms, "
            f"window={confirmation_window_ms}ms"
        )

    # ------------------------------------------------------------------
    # Event sources
    # ------------------------------------------------------------------

    def _post(self, event):
        """Queue an event, hopping onto the loop thread when needed."""
        if (
            self._loop is not None
            and self._loop_thread_id is not None
            and threading.get_ident() != self._loop_thread_id
        ):
            self._loop.call_soon_threadsafe(self.queue.put_nowait, event)
        else:
            self.queue.put_nowait(event)

    def _on_magnitude(self, stream: SensorStream, magnitude: float):
        timestamp = self._loop.time() if self._loop is not None else None
        signal = self.detector.evaluate(stream, magnitude, timestamp)
        if signal is not None:
            self.total_signals += 1
            self._post(ImpactObserved(signal))

    def cancel(self):
        """User pressed CANCEL. Safe to call from any thread."""
        logger.info("Cancel requested")
        self._post(UserCancel())

    def reset(self):
        """Manual clear of a confirmed (or pending) episode."""
        logger.info("Reset requested")
        self._post(ManualReset())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """
        Acquire the sensor subscriptions, then the location fix in background.

        Detection never waits on location: until the fix arrives the
        provider reports UNAVAILABLE.

        Raises:
            SensorUnavailable: If neither motion stream can be started
        """
        self._loop = asyncio.get_running_loop()
        self._loop_thread_id = threading.get_ident()

        self.sampler.start()
        self.running = True
        self.started_at = time.time()
        logger.info(
            f"Monitoring started on {[s.value for s in self.sampler.active_streams]}"
        )

        if self.location_provider is not None:
            self.location_task = asyncio.create_task(self._refresh_location())

    async def _refresh_location(self):
        try:
            await self.location_provider.refresh()
        except PermissionDenied as e:
            self._report_error(e)
        except Exception as e:
            logger.error(f"Location refresh failed: {e}", exc_info=True)

    async def wait_for_location(self):
        """Wait until the background location refresh has finished."""
        if self.location_task is not None:
            await asyncio.shield(self.location_task)

    async def process_events(self):
        """
        Background task: apply queued events until stop() is called.

            task = asyncio.create_task(monitor.process_events())
        """
        self.running = True
        logger.info("Event processor started")

        try:
            while self.running:
                # Wait for event (with timeout to allow graceful shutdown)
                try:
                    event = await asyncio.wait_for(self.queue.get(), timeout=1.0)
                except TimeoutError:
                    continue

                self._handle(event)
                self.process_pending()

        except asyncio.CancelledError:
            logger.info("Event processor cancelled")
            raise

        finally:
            logger.info("Event processor stopped")

    async def run(self):
        """Start monitoring and process events until stopped."""
        await self.start()
        try:
            await self.process_events()
        finally:
            await self.stop()

    async def stop(self):
        """
        Release sensor subscriptions and tear down the episode.

        A pending alert is dismissed (back to IDLE); a confirmed episode
        keeps its phase for the final readout.
        """
        if self.location_task is not None and not self.location_task.done():
            self.location_task.cancel()
            try:
                await self.location_task
            except asyncio.CancelledError:
                pass

        if not self.running and not self.sampler.running:
            return

        logger.info("Stopping fall monitor...")
        self.running = False

        try:
            self.sampler.stop()
        except Exception as e:
            logger.error(f"Error releasing sensor subscriptions: {e}", exc_info=True)
        finally:
            if self.state_machine.snapshot().pending:
                self.state_machine.reset()
            self.state_machine.close()

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    def process_pending(self) -> int:
        """
        Apply every event currently queued, without waiting.

        Returns:
            Number of events applied
        """
        count = 0
        while True:
            try:
                event = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                return count
            self._handle(event)
            count += 1

    def _handle(self, event):
        if isinstance(event, DeadlineElapsed):
            self._apply_queued_cancels()

        try:
            self._apply(event)
        except SchedulingFailure as e:
            self._report_error(e, level=logging.ERROR)
        except Exception as e:
            self.total_errors += 1
            logger.error(f"Error processing {type(event).__name__}: {e}", exc_info=True)

    def _apply(self, event):
        machine = self.state_machine

        if isinstance(event, ImpactObserved):
            if machine.handle_impact(event.signal):
                self.total_episodes += 1
        elif isinstance(event, UserCancel):
            if machine.cancel():
                self.total_cancelled += 1
        elif isinstance(event, DeadlineElapsed):
            if machine.handle_deadline(event.token):
                self.total_confirmed += 1
        elif isinstance(event, ManualReset):
            machine.reset()
        else:
            raise TypeError(f"Unknown monitor event: {event!r}")

    def _apply_queued_cancels(self):
        """Apply cancels already queued behind a deadline, keep the rest in order."""
        held = []
        while True:
            try:
                held.append(self.queue.get_nowait())
            except asyncio.QueueEmpty:
                break

        for event in held:
            if isinstance(event, UserCancel):
                logger.info("Cancel and deadline arrived together, cancel wins")
                self._apply(event)
            else:
                self.queue.put_nowait(event)

    def _report_error(self, error: Exception, level: int = logging.WARNING):
        self.total_errors += 1
        logger.log(level, f"{type(error).__name__}: {error}")
        try:
            self.presenter.report_error(error)
        except Exception as e:
            logger.error(f"Alert presenter report_error failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Readouts
    # ------------------------------------------------------------------

    def status_lines(self) -> list[str]:
        """Debug readout: fall phase plus map markers."""
        lines = list(self.state_machine.status_lines())

        location = (
            self.location_provider.current_location()
            if self.location_provider is not None
            else None
        )
        if isinstance(location, Coordinates):
            coords = f"{location.latitude:.5f}, {location.longitude:.5f}"
            markers = [Markers.USER]
            if self.state_machine.snapshot().confirmed:
                markers.append(Markers.EMERGENCY)
            for color, title in markers:
                lines.append(f"Marker [{color}] {title}: {coords}")
        else:
            lines.append("Location: unavailable")

        return lines

    def get_statistics(self) -> dict:
        """
        Get monitoring statistics.

        Returns:
            Dictionary with statistics
        """
        snapshot = self.state_machine.snapshot()
        return {
            "phase": snapshot.phase.value,
            "total_signals": self.total_signals,
            "total_suppressed": self.state_machine.signals_suppressed,
            "total_episodes": self.total_episodes,
            "total_cancelled": self.total_cancelled,
            "total_confirmed": self.total_confirmed,
            "total_errors": self.total_errors,
            "samples_received": self.sampler.samples_received,
            "active_streams": [s.value for s in self.sampler.active_streams],
            "queue_size": self.queue.qsize(),
            "uptime": time.time() - self.started_at if self.started_at else 0,
        }

    def log_statistics(self):
        """Log current statistics."""
        stats = self.get_statistics()
        logger.info("=" * 60)
        logger.info("Fall Monitor Statistics")
        logger.info("=" * 60)
        logger.info(f"Phase: {stats['phase']}")
        logger.info(f"Samples Received: {stats['samples_received']}")
        logger.info(f"Impact Signals: {stats['total_signals']}")
        logger.info(f"Signals Suppressed: {stats['total_suppressed']}")
        logger.info(f"Episodes Started: {stats['total_episodes']}")
        logger.info(f"Episodes Cancelled: {stats['total_cancelled']}")
        logger.info(f"Episodes Confirmed: {stats['total_confirmed']}")
        logger.info(f"Errors: {stats['total_errors']}")
        logger.info(f"Uptime: {stats['uptime']:.1f}s")
        logger.info("=" * 60)

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (
            f"FallMonitor("
            f"phase={stats['phase']}, "
            f"episodes={stats['total_episodes']}, "
            f"queue={stats['queue_size']})"
        )
