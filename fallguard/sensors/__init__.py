"""Motion sensor sampling for the fall monitor."""

from .models import SensorSample, compute_magnitude
from .sampler import SensorSampler, SensorSource
from .simulated import SimulatedSensorSource

__all__ = [
    "SensorSample",
    "compute_magnitude",
    "SensorSampler",
    "SensorSource",
    "SimulatedSensorSource",
]
