"""
Location provider for map display and emergency marker placement.

Acquires a one-shot location fix at monitor start and serves it
synchronously afterwards, so reading the location never blocks the
confirmation countdown.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import aiohttp

from ..errors import LocationUnavailable, PermissionDenied

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


class LocationUnavailableMarker:
    """Explicit "location unknown" marker."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE = LocationUnavailableMarker()


class LocationSource(Protocol):
    """Platform location API."""

    async def request_permission(self) -> bool: ...

    async def get_current_location(self) -> Coordinates: ...


class StaticLocationSource:
    """Location source returning fixed, configured coordinates."""

    def __init__(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        permission_granted: bool = True,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.permission_granted = permission_granted

    async def request_permission(self) -> bool:
        return self.permission_granted

    async def get_current_location(self) -> Coordinates:
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailable("No coordinates configured")
        return Coordinates(self.latitude, self.longitude)


class HttpLocationSource:
    """
    Location source backed by an HTTP geolocation endpoint.

    The endpoint must answer a GET with JSON holding either
    latitude/longitude or lat/lon keys.
    """

    def __init__(self, endpoint: str, timeout: int = 10, api_key: str | None = None):
        """
        Initialize HTTP location source.

        Args:
            endpoint: Geolocation URL
            timeout: Request timeout in seconds
            api_key: Optional bearer token
        """
        self.endpoint = endpoint
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.api_key = api_key

    async def request_permission(self) -> bool:
        # Network lookups need no platform permission
        return bool(self.endpoint)

    async def get_current_location(self) -> Coordinates:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.endpoint, headers=headers) as response:
                    if response.status != 200:
                        raise LocationUnavailable(
                            f"Location lookup failed with status {response.status}"
                        )
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as e:
            raise LocationUnavailable(f"Location lookup failed: {e}") from e
        except ValueError as e:
            # 200 with a non-JSON body, e.g. a captive portal page
            raise LocationUnavailable(f"Location response is not JSON: {e}") from e

        return _parse_coordinates(payload)


def _parse_coordinates(payload) -> Coordinates:
    if not isinstance(payload, dict):
        raise LocationUnavailable(f"Unexpected location payload: {payload!r}")

    for lat_key, lon_key in (("latitude", "longitude"), ("lat", "lon")):
        if lat_key in payload and lon_key in payload:
            try:
                return Coordinates(float(payload[lat_key]), float(payload[lon_key]))
            except (TypeError, ValueError) as e:
                raise LocationUnavailable(f"Invalid coordinates: {e}") from e

    raise LocationUnavailable("Location payload has no coordinates")


class LocationProvider:
    """
    Owns the LastKnownLocation of the monitoring session.

    Readers get the cached value; only refresh() updates it.
    """

    def __init__(self, source: LocationSource, timeout: float = 10.0):
        """
        Initialize location provider.

        Args:
            source: Platform location API
            timeout: Upper bound for one refresh, in seconds
        """
        self.source = source
        self.timeout = timeout
        self.permission_granted: bool | None = None
        self._location: Coordinates | LocationUnavailableMarker = UNAVAILABLE

    def current_location(self) -> Coordinates | LocationUnavailableMarker:
        """Return the last known location, or UNAVAILABLE."""
        return self._location

    async def refresh(self) -> Coordinates | LocationUnavailableMarker:
        """
        Request permission (once) and acquire a one-shot location fix.

        Returns:
            The new last known location

        Raises:
            PermissionDenied: The first time permission is refused
        """
        if self.permission_granted is False:
            return self._location

        if self.permission_granted is None:
            self.permission_granted = bool(await self.source.request_permission())
            if not self.permission_granted:
                logger.warning("Location permission denied, continuing without a fix")
                raise PermissionDenied()

        try:
            location = await asyncio.wait_for(
                self.source.get_current_location(), timeout=self.timeout
            )
        except TimeoutError:
            logger.warning(f"Location fix timed out after {self.timeout}s")
            return self._location
        except LocationUnavailable as e:
            logger.warning(f"Location unavailable: {e}")
            return self._location
        except Exception as e:
            logger.warning(f"Location fix failed: {e}", exc_info=True)
            return self._location

        self._location = location
        logger.info(f"Location fix: {location.latitude:.5f}, {location.longitude:.5f}")
        return location

    def __repr__(self) -> str:
        return f"LocationProvider(location={self._location!r})"
