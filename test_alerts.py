"""Tests for alert presenters, including webhook delivery to a local server."""

import asyncio
import logging

from aiohttp import web

from conftest import RecordingPresenter
from fallguard.alerts import (
    AlertPresenterGroup,
    LoggingAlertPresenter,
    WebhookAlertPresenter,
    describe_location,
)
from fallguard.location import UNAVAILABLE, Coordinates


async def start_server(statuses):
    """Serve POST /alerts answering with the given statuses in turn."""
    received = []

    async def handler(request):
        received.append(await request.json())
        status = statuses.pop(0) if statuses else 200
        return web.json_response({"ok": status == 200}, status=status)

    app = web.Application()
    app.router.add_post("/alerts", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    return runner, f"http://127.0.0.1:{port}/alerts", received


class TestWebhookAlertPresenter:
    """Tests for fire-and-forget webhook notifications."""

    def test_emergency_with_coordinates(self):
        async def scenario():
            runner, url, received = await start_server([])
            presenter = WebhookAlertPresenter(url, device_uid="watch-1")
            try:
                presenter.show_pending()
                presenter.raise_emergency(Coordinates(40.0, -74.0))
                await presenter.close()
            finally:
                await runner.cleanup()
            return presenter, received

        presenter, received = asyncio.run(scenario())
        by_type = {payload["event_type"]: payload for payload in received}
        assert set(by_type) == {"fall_pending", "fall_confirmed"}
        assert by_type["fall_confirmed"]["latitude"] == 40.0
        assert by_type["fall_confirmed"]["longitude"] == -74.0
        assert by_type["fall_confirmed"]["device_uid"] == "watch-1"
        assert presenter.total_sent == 2

    def test_emergency_without_location(self):
        async def scenario():
            runner, url, received = await start_server([])
            presenter = WebhookAlertPresenter(url)
            try:
                presenter.raise_emergency(UNAVAILABLE)
                await presenter.close()
            finally:
                await runner.cleanup()
            return received

        received = asyncio.run(scenario())
        assert received[0]["event_type"] == "fall_confirmed"
        assert received[0]["location_unknown"] is True
        assert "latitude" not in received[0]

    def test_retries_after_server_error(self):
        async def scenario():
            runner, url, received = await start_server([500])
            presenter = WebhookAlertPresenter(url, retry_attempts=3, retry_delays=(0,))
            try:
                presenter.dismiss_pending()
                await presenter.close()
            finally:
                await runner.cleanup()
            return presenter, received

        presenter, received = asyncio.run(scenario())
        assert [p["event_type"] for p in received] == ["fall_cancelled"] * 2
        assert presenter.total_sent == 1
        assert presenter.total_failed == 0

    def test_gives_up_after_attempts(self):
        async def scenario():
            runner, url, received = await start_server([500, 500])
            presenter = WebhookAlertPresenter(url, retry_attempts=2, retry_delays=(0,))
            try:
                presenter.report_error(RuntimeError("timer"))
                await presenter.close()
            finally:
                await runner.cleanup()
            return presenter, received

        presenter, received = asyncio.run(scenario())
        assert len(received) == 2
        assert received[0]["error_type"] == "RuntimeError"
        assert presenter.total_failed == 1

    def test_unconfigured_endpoint_is_skipped(self):
        async def scenario():
            presenter = WebhookAlertPresenter("")
            presenter.raise_emergency(UNAVAILABLE)
            pending = len(presenter._tasks)
            await presenter.close()
            return pending

        assert asyncio.run(scenario()) == 0

    def test_no_running_loop_drops_notification(self):
        presenter = WebhookAlertPresenter("http://127.0.0.1:9/alerts")
        presenter.show_pending()
        assert presenter._tasks == set()


class TestLocalPresenters:
    """Tests for logging presenter and presenter group."""

    def test_logging_presenter_texts(self, caplog):
        caplog.set_level(logging.INFO, logger="fallguard.alerts")
        presenter = LoggingAlertPresenter()
        presenter.show_pending()
        presenter.raise_emergency(UNAVAILABLE)

        assert "Cancel within 3 seconds?" in caplog.text
        assert "Emergency alert triggered." in caplog.text
        assert "Location unknown" in caplog.text

    def test_describe_location(self):
        assert describe_location(Coordinates(1.0, 2.0)) == "1.00000, 2.00000"
        assert describe_location(UNAVAILABLE) == "Location unknown"

    def test_group_isolates_failures(self):
        class Broken:
            def show_pending(self):
                raise RuntimeError("ui gone")

        recorder = RecordingPresenter()
        group = AlertPresenterGroup([Broken(), recorder])
        group.show_pending()
        assert recorder.names() == ["show_pending"]

    def test_group_close_awaits_closable_presenters(self):
        closed = []

        class Closable(RecordingPresenter):
            async def close(self):
                closed.append(True)

        group = AlertPresenterGroup([RecordingPresenter(), Closable()])
        asyncio.run(group.close())
        assert closed == [True]
