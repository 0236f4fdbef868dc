"""Unit tests for the location provider."""

import asyncio

import pytest
from aiohttp import web

from fallguard.errors import LocationUnavailable, PermissionDenied
from fallguard.location import (
    UNAVAILABLE,
    Coordinates,
    HttpLocationSource,
    LocationProvider,
    StaticLocationSource,
)
from fallguard.location.provider import _parse_coordinates


class SlowSource:
    async def request_permission(self):
        return True

    async def get_current_location(self):
        await asyncio.sleep(1.0)
        return Coordinates(0.0, 0.0)


class TestLocationProvider:
    """Tests for permission handling and one-shot fixes."""

    def test_unavailable_before_refresh(self):
        provider = LocationProvider(StaticLocationSource(1.0, 2.0))
        assert provider.current_location() is UNAVAILABLE

    def test_refresh_caches_fix(self):
        provider = LocationProvider(StaticLocationSource(1.0, 2.0))
        location = asyncio.run(provider.refresh())
        assert location == Coordinates(1.0, 2.0)
        assert provider.current_location() == Coordinates(1.0, 2.0)

    def test_permission_denied_reported_once(self):
        provider = LocationProvider(
            StaticLocationSource(1.0, 2.0, permission_granted=False)
        )
        with pytest.raises(PermissionDenied):
            asyncio.run(provider.refresh())

        assert asyncio.run(provider.refresh()) is UNAVAILABLE
        assert provider.current_location() is UNAVAILABLE

    def test_missing_coordinates_stay_unavailable(self):
        provider = LocationProvider(StaticLocationSource())
        assert asyncio.run(provider.refresh()) is UNAVAILABLE

    def test_timeout_is_unavailable(self):
        provider = LocationProvider(SlowSource(), timeout=0.01)
        assert asyncio.run(provider.refresh()) is UNAVAILABLE

    def test_unavailable_marker_is_falsy_singleton(self):
        from fallguard.location import LocationUnavailableMarker

        assert not UNAVAILABLE
        assert LocationUnavailableMarker() is UNAVAILABLE


class TestParseCoordinates:
    """Tests for HTTP location payload parsing."""

    def test_latitude_longitude_keys(self):
        assert _parse_coordinates({"latitude": 1.5, "longitude": -2.5}) == Coordinates(
            1.5, -2.5
        )

    def test_lat_lon_keys(self):
        assert _parse_coordinates({"lat": "10", "lon": "20"}) == Coordinates(10.0, 20.0)

    @pytest.mark.parametrize(
        "payload", [{}, {"lat": "north", "lon": 1}, ["not", "a", "dict"]]
    )
    def test_invalid_payloads(self, payload):
        with pytest.raises(LocationUnavailable):
            _parse_coordinates(payload)


async def start_location_server(handler):
    """Serve GET /loc with the given handler on an ephemeral port."""
    app = web.Application()
    app.router.add_get("/loc", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    return runner, f"http://127.0.0.1:{port}/loc"


def refresh_against(handler, provider_timeout=5.0):
    async def scenario():
        runner, url = await start_location_server(handler)
        provider = LocationProvider(HttpLocationSource(url), timeout=provider_timeout)
        try:
            return await provider.refresh()
        finally:
            await runner.cleanup()

    return asyncio.run(scenario())


class TestHttpLocationSource:
    """Tests for one-shot fixes from an HTTP endpoint."""

    def test_valid_fix(self):
        async def handler(request):
            return web.json_response({"lat": 35.68, "lon": 139.69})

        assert refresh_against(handler) == Coordinates(35.68, 139.69)

    def test_error_status_is_unavailable(self):
        async def handler(request):
            return web.json_response({"error": "quota"}, status=503)

        assert refresh_against(handler) is UNAVAILABLE

    def test_non_json_body_is_unavailable(self):
        async def handler(request):
            return web.Response(text="<html>captive portal</html>", content_type="text/html")

        assert refresh_against(handler) is UNAVAILABLE

    def test_non_json_body_raises_location_unavailable(self):
        async def handler(request):
            return web.Response(text="<html>captive portal</html>", content_type="text/html")

        async def scenario():
            runner, url = await start_location_server(handler)
            try:
                await HttpLocationSource(url).get_current_location()
            finally:
                await runner.cleanup()

        with pytest.raises(LocationUnavailable):
            asyncio.run(scenario())

    def test_timeout_is_unavailable(self):
        async def handler(request):
            await asyncio.sleep(0.5)
            return web.json_response({"lat": 1.0, "lon": 2.0})

        assert refresh_against(handler, provider_timeout=0.05) is UNAVAILABLE
