"""
Console entry point for the fall monitor.

Runs the monitor on simulated motion sensors in one asyncio event loop.
Type commands on stdin while it runs:

    cancel | c          cancel a pending fall alert
    impact [accel|gyro] inject an impact on the next sample (default accel)
    status | s          show the debug readout
    reset | r           clear a confirmed fall
    quit | q            stop monitoring
"""

import asyncio
import logging
import signal
import sys

from fallguard import FallMonitor, ImpactDetector, LocationProvider
from fallguard.alerts import (
    AlertPresenterGroup,
    LoggingAlertPresenter,
    WebhookAlertPresenter,
)
from fallguard.config import get_settings
from fallguard.errors import SensorUnavailable
from fallguard.location import HttpLocationSource, StaticLocationSource
from fallguard.sensors import SimulatedSensorSource
from fallguard.utils.constants import SensorStream


def setup_logging(settings):
    """Setup logging configuration."""
    log_file = settings.LOG_DIR / "fall_monitor.log"

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(log_file), logging.StreamHandler(sys.stdout)],
    )


logger = logging.getLogger(__name__)

# Per-axis values of an injected impact, well above both thresholds
IMPACT_SPIKES = {
    SensorStream.ACCELEROMETER: (2.0, 1.5, 1.5),
    SensorStream.GYROSCOPE: (3.0, 2.0, 1.0),
}


class FallMonitorApp:
    """Wires settings, sensors, location and alerts into a FallMonitor."""

    def __init__(self):
        """Initialize application components."""
        # Load configuration
        self.settings = get_settings()
        setup_logging(self.settings)

        logger.info("=" * 80)
        logger.info("Fall Monitor - Console Mode")
        logger.info("=" * 80)

        # Log configuration
        self.settings.log_config()

        self._init_components()

    def _init_components(self):
        """Initialize all system components."""
        logger.info("Initializing system components...")
        settings = self.settings

        # 1. Sensor platform
        self.sensor_source = SimulatedSensorSource(
            noise_std=settings.SENSOR_NOISE,
            unavailable=settings.DISABLED_SENSORS,
        )

        # 2. Location
        if settings.LOCATION_ENDPOINT:
            location_source = HttpLocationSource(
                endpoint=settings.LOCATION_ENDPOINT,
                timeout=settings.LOCATION_TIMEOUT,
                api_key=settings.API_KEY or None,
            )
        else:
            location_source = StaticLocationSource(
                latitude=settings.LOCATION_LATITUDE,
                longitude=settings.LOCATION_LONGITUDE,
                permission_granted=settings.LOCATION_PERMISSION,
            )
        self.location_provider = LocationProvider(
            location_source, timeout=settings.LOCATION_TIMEOUT
        )

        # 3. Alert presenters
        presenters = [LoggingAlertPresenter()]
        if settings.ALERT_WEBHOOK_URL:
            presenters.append(
                WebhookAlertPresenter(
                    endpoint=settings.ALERT_WEBHOOK_URL,
                    device_uid=settings.DEVICE_UID or None,
                    api_key=settings.API_KEY or None,
                    timeout=settings.API_TIMEOUT,
                    retry_attempts=settings.API_RETRY_ATTEMPTS,
                    retry_delays=settings.API_RETRY_DELAYS,
                )
            )
        self.presenter = AlertPresenterGroup(presenters)

        # 4. Monitor
        self.monitor = FallMonitor(
            sensor_source=self.sensor_source,
            presenter=self.presenter,
            location_provider=self.location_provider,
            detector=ImpactDetector(
                accel_threshold=settings.ACCEL_THRESHOLD,
                gyro_threshold=settings.GYRO_THRESHOLD,
            ),
            sampling_period_ms=settings.SAMPLING_PERIOD_MS,
            confirmation_window_ms=settings.CONFIRMATION_WINDOW_MS,
        )

        logger.info("All components initialized successfully")

    def handle_command(self, line: str):
        """Apply one console command."""
        parts = line.strip().lower().split()
        if not parts:
            return

        command, args = parts[0], parts[1:]

        if command in ("c", "cancel"):
            self.monitor.cancel()
        elif command in ("i", "impact"):
            stream = SensorStream.ACCELEROMETER
            if args and args[0].startswith("gyro"):
                stream = SensorStream.GYROSCOPE
            self.sensor_source.inject(stream, *IMPACT_SPIKES[stream])
            logger.info(f"Impact injected on {stream.value}")
        elif command in ("s", "status"):
            for status_line in self.monitor.status_lines():
                logger.info(status_line)
        elif command in ("r", "reset"):
            self.monitor.reset()
        elif command in ("q", "quit", "exit"):
            self.request_stop()
        else:
            logger.warning(f"Unknown command: {command}")

    def request_stop(self):
        """Ask the event processor to finish."""
        logger.info("Shutdown requested")
        self.monitor.running = False

    def _on_stdin(self):
        line = sys.stdin.readline()
        if not line:
            asyncio.get_running_loop().remove_reader(sys.stdin.fileno())
            return
        self.handle_command(line)

    def _install_handlers(self, loop: asyncio.AbstractEventLoop):
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                logger.debug(f"Signal handler for {sig} not supported")

        try:
            loop.add_reader(sys.stdin.fileno(), self._on_stdin)
            logger.info("Commands: cancel | impact [accel|gyro] | status | reset | quit")
        except (NotImplementedError, ValueError, OSError) as e:
            logger.warning(f"Console commands unavailable: {e}")

    async def run(self):
        """Run the monitor until quit or a termination signal."""
        loop = asyncio.get_running_loop()
        self._install_handlers(loop)

        try:
            logger.info("Starting fall monitor...")
            logger.info("=" * 80)
            await self.monitor.run()
        finally:
            await self.shutdown()

    async def shutdown(self):
        """Graceful shutdown of all components."""
        logger.info("=" * 80)
        logger.info("Shutting down system...")
        logger.info("=" * 80)

        await self.monitor.stop()
        self.monitor.log_statistics()

        logger.info("Closing alert presenters...")
        await self.presenter.close()

        logger.info("=" * 80)
        logger.info("Shutdown complete")
        logger.info("=" * 80)


def main():
    """Main entry point."""
    app = FallMonitorApp()

    try:
        asyncio.run(app.run())
    except SensorUnavailable as e:
        logger.error(f"Cannot start monitoring: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
