"""Outbound change notifications to the Sesami booking system.

When a booking that came from Sesami is edited or cancelled here, Sesami is
told about it so both calendars agree. Delivery is best effort: a bounded
number of attempts with exponential backoff, then a logged failure. Nothing
in here raises into the request that triggered it.
"""

import asyncio
import logging
from typing import Optional

import httpx
from fastapi import BackgroundTasks

from app.core.config import settings
from app.core.exceptions import ExternalNotifyError

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 30


class SesamiSyncClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_base: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.SESAMI_API_URL).rstrip("/")
        self.api_key = settings.SESAMI_API_KEY if api_key is None else api_key
        self.timeout = timeout or settings.SESAMI_SYNC_TIMEOUT_SECONDS
        self.max_attempts = max(1, max_attempts or settings.SESAMI_SYNC_MAX_ATTEMPTS)
        self.backoff_base = backoff_base
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _backoff(self, attempt: int) -> None:
        # 1s, 2s, 4s ... capped
        await asyncio.sleep(min(self.backoff_base * (2 ** attempt), MAX_BACKOFF_SECONDS))

    async def notify_booking_change(self, external_booking_id: str, action: str) -> bool:
        """Tell Sesami a booking changed here. Returns True on a 2xx response."""
        if not self.api_key:
            logger.info(
                "SESAMI_API_KEY not set; skipping %s sync for booking %s", action, external_booking_id
            )
            return False
        try:
            await self._deliver(external_booking_id, action)
        except ExternalNotifyError as e:
            logger.error("Sesami sync gave up: %s", e)
            return False
        logger.info("Synced %s for booking %s to Sesami", action, external_booking_id)
        return True

    async def _deliver(self, external_booking_id: str, action: str) -> None:
        url = f"{self.base_url}/bookings/sync"
        payload = {"externalBookingId": external_booking_id, "action": action}
        last_error = None

        for attempt in range(self.max_attempts):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.post(url, json=payload, headers=self._headers())

                if response.is_success:
                    return

                if response.status_code < 500:
                    # Client error - retrying will not help
                    last_error = f"HTTP {response.status_code}"
                    break

                last_error = f"HTTP {response.status_code}"
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"

            logger.warning(
                "Sesami sync attempt %d/%d for booking %s failed: %s",
                attempt + 1, self.max_attempts, external_booking_id, last_error,
            )
            if attempt + 1 < self.max_attempts:
                await self._backoff(attempt)

        raise ExternalNotifyError(f"booking {external_booking_id} ({action}): {last_error}")


class BackgroundSyncDispatcher:
    """Schedules Sesami notifications to run after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks, client: Optional[SesamiSyncClient] = None):
        self.background_tasks = background_tasks
        self.client = client or SesamiSyncClient()

    def notify(self, external_booking_id: str, action: str) -> None:
        self.background_tasks.add_task(self.client.notify_booking_change, external_booking_id, action)
