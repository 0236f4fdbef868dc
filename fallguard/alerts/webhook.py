"""
Webhook alert presenter.
Posts fall notifications to an HTTP endpoint without blocking the monitor.
"""

import asyncio
import logging
import time

import aiohttp

from ..location.provider import Coordinates

logger = logging.getLogger(__name__)


class WebhookAlertPresenter:
    """
    Non-blocking notification client with retry logic.

    Every presenter call schedules a background task that POSTs a JSON
    payload; failed posts are retried with exponential backoff for
    devices on unstable network connections.

    Event types:
    - fall_pending: countdown started
    - fall_cancelled: user cancelled the countdown
    - fall_confirmed: emergency raised, with coordinates or location_unknown
    - monitor_error: error reported by the monitor
    """

    def __init__(
        self,
        endpoint: str,
        device_uid: str | None = None,
        api_key: str | None = None,
        timeout: int = 30,
        retry_attempts: int = 3,
        retry_delays: tuple[float, ...] = (1, 2, 4),
    ):
        """
        Initialize webhook presenter.

        Args:
            endpoint: URL receiving the notifications
            device_uid: Optional identifier sent with every payload
            api_key: Optional API key for authentication
            timeout: Request timeout in seconds
            retry_attempts: Number of attempts per notification
            retry_delays: Delay in seconds between retries (exponential backoff)
        """
        self.endpoint = endpoint
        self.device_uid = device_uid
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delays = retry_delays or (1,)

        # Session will be created when needed (in async context)
        self._session: aiohttp.ClientSession | None = None
        self._tasks: set[asyncio.Task] = set()

        self.total_sent = 0
        self.total_failed = 0

        logger.info(
            f"Initialized WebhookAlertPresenter: "
            f"timeout={timeout}s, retries={retry_attempts}"
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def _get_headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def show_pending(self):
        self._dispatch({"event_type": "fall_pending"})

    def dismiss_pending(self):
        self._dispatch({"event_type": "fall_cancelled"})

    def raise_emergency(self, location):
        payload = {"event_type": "fall_confirmed"}
        if isinstance(location, Coordinates):
            payload.update(location.to_dict())
        else:
            payload["location_unknown"] = True
        self._dispatch(payload)

    def report_error(self, error):
        self._dispatch(
            {
                "event_type": "monitor_error",
                "error_type": type(error).__name__,
                "error": str(error),
            }
        )

    def _dispatch(self, payload: dict):
        """Schedule a POST on the running loop and return immediately."""
        if not self.endpoint:
            logger.warning("Webhook endpoint not configured, skipping notification")
            return

        payload["timestamp"] = time.time()
        if self.device_uid:
            payload["device_uid"] = self.device_uid

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(
                f"No running event loop, dropping {payload['event_type']} notification"
            )
            return

        task = loop.create_task(self.send(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def send(self, payload: dict) -> bool:
        """
        POST one notification with retries.

        Args:
            payload: JSON-serializable notification body

        Returns:
            True if the endpoint answered 2xx, False otherwise
        """
        session = await self._get_session()
        event_type = payload.get("event_type", "notification")

        for attempt in range(self.retry_attempts):
            try:
                logger.info(
                    f"Sending {event_type} (attempt {attempt + 1}/{self.retry_attempts})"
                )

                async with session.post(
                    self.endpoint, json=payload, headers=self._get_headers()
                ) as response:
                    if 200 <= response.status < 300:
                        self.total_sent += 1
                        logger.info(f"✓ {event_type} notification delivered")
                        return True

                    error_text = await response.text()
                    logger.error(
                        f"✗ {event_type} failed with status {response.status}: "
                        f"{error_text}"
                    )

            except TimeoutError:
                logger.warning(f"{event_type} timeout (attempt {attempt + 1})")

            except aiohttp.ClientError as e:
                logger.warning(
                    f"Network error during {event_type} (attempt {attempt + 1}): {e}"
                )

            # Wait before retry (except on last attempt)
            if attempt < self.retry_attempts - 1:
                delay = (
                    self.retry_delays[attempt]
                    if attempt < len(self.retry_delays)
                    else self.retry_delays[-1]
                )
                logger.info(f"Retrying in {delay} seconds...")
                await asyncio.sleep(delay)

        self.total_failed += 1
        logger.error(
            f"Failed to send {event_type} after {self.retry_attempts} attempts"
        )
        return False

    async def close(self):
        """Wait for in-flight notifications and close the HTTP session."""
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} pending notifications...")
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Webhook session closed")
