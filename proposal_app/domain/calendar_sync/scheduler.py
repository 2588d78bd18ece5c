"""
Calendar sync scheduler

Cooperative rate limiter in front of CalendarSyncService. Two signals decide
whether a sync may run:

- the persisted ``last_sync_at`` on the integration (is a sync due at all?)
- an in-process claim per user, so a periodic tick and an on-demand request
  arriving together only start one fetch sequence

This is not a lock. A narrow overlap between processes is harmless because
lead upserts are idempotent.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Optional

from ...config import CALENDAR_SYNC_INTERVAL_MINUTES
from ...models_google_calendar import GoogleCalendarIntegration
from ...shared.clock import utcnow
from .exceptions import CalendarSyncError
from .service import CalendarSyncService, SyncResult

logger = logging.getLogger(__name__)

# Timer jitter: a tick arriving slightly early still counts as the next interval
DEBOUNCE_SLACK = timedelta(seconds=10)


@dataclass
class SyncOutcome:
    triggered: bool
    result: Optional[SyncResult] = None
    reason: Optional[str] = None

    @property
    def new_event_count(self) -> int:
        return self.result.new_event_count if self.result else 0


class SyncScheduler:
    def __init__(
        self,
        interval: timedelta = timedelta(minutes=CALENDAR_SYNC_INTERVAL_MINUTES),
        debounce_slack: timedelta = DEBOUNCE_SLACK,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.interval = interval
        self.debounce_slack = debounce_slack
        self.clock = clock
        self._last_claims: dict[int, datetime] = {}
        self._lock = Lock()

    def is_due(self, integration: Optional[GoogleCalendarIntegration], now: Optional[datetime] = None) -> bool:
        """An enabled integration is due when it never synced or synced an interval ago (less the claim slack)"""
        if integration is None or not integration.enabled:
            return False
        if integration.last_sync_at is None:
            return True
        now = now or self.clock()
        return now - integration.last_sync_at >= self.interval - self.debounce_slack

    def claim(self, user_id: int, now: Optional[datetime] = None) -> bool:
        """Reserve the next sync slot for a user; False if one was claimed within the window"""
        now = now or self.clock()
        with self._lock:
            last_claim = self._last_claims.get(user_id)
            if last_claim is not None and now - last_claim < self.interval - self.debounce_slack:
                return False
            self._last_claims[user_id] = now
            return True

    def release(self, user_id: int) -> None:
        """Forget the claim (e.g. after disconnect) so a reconnect can sync immediately"""
        with self._lock:
            self._last_claims.pop(user_id, None)

    async def run_if_due(self, user_id: int, service: CalendarSyncService) -> SyncOutcome:
        """Periodic tick / activation: sync only if last_sync_at says it is time"""
        integration = service.get_integration(user_id)
        if not self.is_due(integration):
            return SyncOutcome(triggered=False, reason="not_due")
        return await self.trigger(user_id, service)

    async def trigger(self, user_id: int, service: CalendarSyncService) -> SyncOutcome:
        """On-demand sync, still subject to the debounce window"""
        if not self.claim(user_id):
            logger.info(f"⏭️ Calendar sync for user {user_id} skipped: another sync ran recently")
            return SyncOutcome(triggered=False, reason="debounced")

        try:
            result = await service.sync(user_id)
        except CalendarSyncError:
            # A failed attempt must not block a retry for a whole interval
            self.release(user_id)
            raise
        return SyncOutcome(triggered=True, result=result)


# Process-wide scheduler shared by the API and the worker
sync_scheduler = SyncScheduler()
