"""Impact detection for the fall monitor."""

from .impact_detector import ImpactDetector, ImpactSignal

__all__ = ["ImpactDetector", "ImpactSignal"]
