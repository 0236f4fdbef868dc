"""Motion sample models."""

from dataclasses import dataclass

import numpy as np

from ..utils.constants import SensorStream


@dataclass(frozen=True)
class SensorSample:
    """Single 3-axis reading from one motion stream."""

    x: float
    y: float
    z: float
    stream: SensorStream
    timestamp: float = 0.0  # loop time at arrival

    @property
    def magnitude(self) -> float:
        """Euclidean norm of the reading."""
        return compute_magnitude(self.x, self.y, self.z)


def compute_magnitude(x: float, y: float, z: float) -> float:
    """
    Calculate vector magnitude sqrt(x^2 + y^2 + z^2).

    Args:
        x: X-axis value
        y: Y-axis value
        z: Z-axis value

    Returns:
        Magnitude as a python float
    """
    return float(np.linalg.norm(np.array([x, y, z], dtype=np.float64)))
