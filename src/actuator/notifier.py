"""
Pump actuator notifier.

Sends `GET {base_url}/pump/on` or `/pump/off` only when the requested state
changes. At session start the pump is taken to be off, so an initial run of
empty frames sends nothing. Delivery is at-most-once without confirmation:
`last_notified` is updated before the request goes out and is never rolled
back on failure. A later frame with a different outcome re-triggers a
corrective notification.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import httpx


class PumpNotifier:
    """
    Debounced, fire-and-forget pump switch.

    Requests run as background tasks so a slow device never stalls the frame
    loop. They are serialized in issue order, so an "off" can never overtake
    the "on" issued before it.

    Example:
        async with httpx.AsyncClient() as client:
            notifier = PumpNotifier(client, "http://192.168.1.100")
            notifier.notify(True)
            await notifier.flush()
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout_s: Optional[float] = 5.0):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._last_notified: Optional[bool] = None
        # True only until the first notification or endpoint change
        self._assumed_off = True
        self._send_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()
        self.sent_count = 0
        self.failed_count = 0

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def last_notified(self) -> Optional[bool]:
        """Last state we decided to send; None while the device state is unknown."""
        return self._last_notified

    def set_base_url(self, base_url: str) -> None:
        """
        Point at a different device.

        A device left switched on gets an "off" before the switch. The new
        device's state is unknown, so the next notify() is always sent,
        including an "off".

        Must be called from a running event loop.
        """
        previous = self._base_url
        self._base_url = base_url.rstrip("/")
        if self._last_notified is True:
            self._schedule(False, self._url(previous, False))
        self._last_notified = None
        self._assumed_off = False
        logging.info(f"Pump endpoint set to {self._base_url}")

    @staticmethod
    def _url(base_url: str, on: bool) -> str:
        return f"{base_url}/pump/{'on' if on else 'off'}"

    def url_for(self, on: bool) -> str:
        return self._url(self._base_url, on)

    def notify(self, target_present: bool) -> Optional[asyncio.Task]:
        """
        Request the pump state matching `target_present`.

        Must be called from a running event loop. Returns the background
        send task, or None when the state is unchanged.
        """
        if target_present == self._last_notified:
            return None
        if self._last_notified is None and not target_present and self._assumed_off:
            return None

        self._last_notified = target_present
        self._assumed_off = False
        return self._schedule(target_present, self.url_for(target_present))

    def _schedule(self, on: bool, url: str) -> asyncio.Task:
        task = asyncio.create_task(self._send(on, url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """Wait for every notification issued so far to complete."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _send(self, on: bool, url: str) -> bool:
        async with self._send_lock:
            try:
                response = await self._client.get(url, timeout=self._timeout_s)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                self.failed_count += 1
                logging.warning(f"Pump endpoint not reachable ({url}): {e!r}")
                return False

        self.sent_count += 1
        if not response.is_success:
            logging.warning(f"Pump endpoint answered {response.status_code} for {url}")
        logging.info(f"Pump {'ON' if on else 'OFF'} ({url})")
        return True

    async def aclose(self) -> None:
        await self.flush()
        await self._client.aclose()
