"""Location acquisition for the fall monitor."""

from .provider import (
    UNAVAILABLE,
    Coordinates,
    HttpLocationSource,
    LocationProvider,
    LocationSource,
    LocationUnavailableMarker,
    StaticLocationSource,
)

__all__ = [
    "UNAVAILABLE",
    "Coordinates",
    "HttpLocationSource",
    "LocationProvider",
    "LocationSource",
    "LocationUnavailableMarker",
    "StaticLocationSource",
]
