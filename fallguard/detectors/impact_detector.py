import logging
from dataclasses import dataclass

from ..utils.constants import DEFAULT_IMPACT_THRESHOLDS, SensorStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImpactSignal:
    """A single threshold crossing on one motion stream."""

    stream: SensorStream
    magnitude: float
    threshold: float
    timestamp: float | None = None


class ImpactDetector:
    """
    Fixed-threshold impact detection on sample magnitudes.

    Either stream can trigger on its own (logical OR). The detector keeps
    no state between calls and reports every crossing; deciding whether a
    crossing starts a new episode is left to the state machine.

    Thresholds:
    - accelerometer: 2.5 (m/s^2 magnitude)
    - gyroscope: 3.0 (rad/s magnitude)
    """

    def __init__(
        self,
        accel_threshold: float = DEFAULT_IMPACT_THRESHOLDS[SensorStream.ACCELEROMETER],
        gyro_threshold: float = DEFAULT_IMPACT_THRESHOLDS[SensorStream.GYROSCOPE],
    ):
        """
        Initialize impact detector.

        Args:
            accel_threshold: Accelerometer magnitude that must be exceeded
            gyro_threshold: Gyroscope magnitude that must be exceeded
        """
        for name, value in (("accel", accel_threshold), ("gyro", gyro_threshold)):
            if value <= 0:
                raise ValueError(f"{name} threshold must be positive, got {value}")

        self.thresholds = {
            SensorStream.ACCELEROMETER: float(accel_threshold),
            SensorStream.GYROSCOPE: float(gyro_threshold),
        }

        logger.info("ImpactDetector initialized")
        logger.info(f"  Accelerometer threshold: {accel_threshold}")
        logger.info(f"  Gyroscope threshold: {gyro_threshold}")

    def evaluate(
        self,
        stream: SensorStream,
        magnitude: float,
        timestamp: float | None = None,
    ) -> ImpactSignal | None:
        """
        Check one magnitude against its stream threshold.

        Args:
            stream: Stream the magnitude came from
            magnitude: Vector magnitude of the sample
            timestamp: Optional arrival time, carried into the signal

        Returns:
            ImpactSignal if magnitude strictly exceeds the threshold, else None
        """
        try:
            threshold = self.thresholds[stream]
        except KeyError:
            raise ValueError(f"Unknown sensor stream: {stream!r}") from None

        if magnitude > threshold:
            logger.debug(
                f"Impact on {stream.value}: {magnitude:.2f} > {threshold:.2f}"
            )
            return ImpactSignal(stream, float(magnitude), threshold, timestamp)

        return None
