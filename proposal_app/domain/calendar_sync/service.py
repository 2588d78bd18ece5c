"""Calendar sync service - pulls Google Calendar events into meeting leads"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import CALENDAR_SYNC_FUTURE_DAYS, CALENDAR_SYNC_MAX_RESULTS, CALENDAR_SYNC_PAST_DAYS
from ...models_google_calendar import GoogleCalendarIntegration
from ...shared.clock import utcnow
from ..meeting_leads.repository import MeetingLeadRepository
from .classifier import classify_title
from .enrichment import enrich_event, event_start
from .exceptions import CalendarUnauthorized, NotConnected, TokenExpired
from .google_client import CalendarEvent, GoogleApiClient
from .repository import CredentialRepository, store_errors
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    new_event_count: int = 0
    updated_event_count: int = 0
    skipped_event_count: int = 0


class CalendarSyncService:
    """Fetch → classify → enrich → idempotent upsert, for one user at a time"""

    def __init__(
        self,
        db: Session,
        google: Optional[GoogleApiClient] = None,
        token_manager: Optional[TokenManager] = None,
        past_days: int = CALENDAR_SYNC_PAST_DAYS,
        future_days: int = CALENDAR_SYNC_FUTURE_DAYS,
        max_results: int = CALENDAR_SYNC_MAX_RESULTS,
    ):
        self.db = db
        self.token_manager = token_manager or TokenManager(db, google=google)
        self.google = google or self.token_manager.google
        self.past_days = past_days
        self.future_days = future_days
        self.max_results = max_results
        self.credentials = CredentialRepository()
        self.leads = MeetingLeadRepository()

    def get_integration(self, user_id: int) -> Optional[GoogleCalendarIntegration]:
        with store_errors(self.db, "load Google integration"):
            return self.credentials.get_by_user(self.db, user_id)

    async def sync(self, user_id: int) -> SyncResult:
        """
        Sync one user's calendar window into meeting leads.

        Raises NotConnected, TokenExpired, TokenRefreshError,
        CalendarFetchError or StoreError; nothing is swallowed.
        """
        integration = self.get_integration(user_id)
        if integration is None:
            raise NotConnected()
        if not integration.enabled:
            # Stored token must not be used until the user re-authorizes
            raise TokenExpired()

        access_token = await self.token_manager.ensure_fresh_token(integration)

        now = utcnow()
        try:
            events = await self.google.list_events(
                access_token,
                time_min=now - timedelta(days=self.past_days),
                time_max=now + timedelta(days=self.future_days),
                calendar_id=integration.google_calendar_id or "primary",
                max_results=self.max_results,
            )
        except CalendarUnauthorized as e:
            with store_errors(self.db, "mark Google integration as needing reconnect"):
                self.credentials.mark_disabled(self.db, integration)
            logger.warning(f"⚠️ Calendar returned 401 for user {user_id}; reconnect required")
            raise TokenExpired() from e

        result = self._ingest(user_id, events)

        # Stamp even when nothing was found so the scheduler sees the attempt
        with store_errors(self.db, "record last sync time"):
            self.credentials.stamp_last_sync(self.db, integration, utcnow())

        logger.info(
            f"✅ Calendar sync for user {user_id}: {result.new_event_count} new, "
            f"{result.updated_event_count} updated, {result.skipped_event_count} skipped"
        )
        return result

    def _ingest(self, user_id: int, events: list[CalendarEvent]) -> SyncResult:
        result = SyncResult()
        with store_errors(self.db, "save meeting leads"):
            for event in events:
                if not event.summary or event.status == "cancelled":
                    result.skipped_event_count += 1
                    continue

                classification = classify_title(event.summary)
                if not classification.is_lead:
                    result.skipped_event_count += 1
                    continue

                _, created = self.leads.upsert_from_event(
                    self.db,
                    user_id=user_id,
                    google_event_id=event.id,
                    title=event.summary,
                    client_name=classification.client_name,
                    event_at=event_start(event),
                    enrichment=enrich_event(event).as_columns(),
                )
                if created:
                    result.new_event_count += 1
                else:
                    result.updated_event_count += 1
            self.db.commit()
        return result
