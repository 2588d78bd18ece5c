"""Credential repository - Database operations for Google Calendar integrations"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models_google_calendar import GoogleCalendarIntegration
from ...security_utils import encrypt_token
from .exceptions import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise database failures as StoreError"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Database error while trying to {action}: {e}")
        raise StoreError(f"Failed to {action}") from e


class CredentialRepository:
    """Repository for the per-user Google credential record"""

    @staticmethod
    def get_by_user(db: Session, user_id: int) -> Optional[GoogleCalendarIntegration]:
        return (
            db.query(GoogleCalendarIntegration)
            .filter(GoogleCalendarIntegration.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_enabled(db: Session) -> list[GoogleCalendarIntegration]:
        return (
            db.query(GoogleCalendarIntegration)
            .filter(GoogleCalendarIntegration.enabled.is_(True))
            .order_by(GoogleCalendarIntegration.user_id)
            .all()
        )

    @staticmethod
    def upsert_tokens(
        db: Session,
        user_id: int,
        access_token: str,
        refresh_token: Optional[str],
        token_expires_at: datetime,
        google_email: Optional[str],
    ) -> GoogleCalendarIntegration:
        """
        Store a freshly issued grant. Updates the user's record in place if it
        exists (re-enabling it), otherwise inserts one. A grant without a
        refresh token keeps the one already stored.
        """
        integration = CredentialRepository.get_by_user(db, user_id)
        encrypted_refresh = encrypt_token(refresh_token) if refresh_token else None

        if integration:
            integration.access_token = encrypt_token(access_token)
            if encrypted_refresh:
                integration.refresh_token = encrypted_refresh
            integration.token_expires_at = token_expires_at
            integration.google_user_email = google_email or integration.google_user_email
            integration.enabled = True
        else:
            integration = GoogleCalendarIntegration(
                user_id=user_id,
                access_token=encrypt_token(access_token),
                refresh_token=encrypted_refresh,
                token_expires_at=token_expires_at,
                google_user_email=google_email,
                google_calendar_id="primary",
                enabled=True,
            )
            db.add(integration)

        db.commit()
        db.refresh(integration)
        return integration

    @staticmethod
    def update_access_token(
        db: Session,
        integration: GoogleCalendarIntegration,
        access_token: str,
        token_expires_at: datetime,
        refresh_token: Optional[str] = None,
    ) -> None:
        integration.access_token = encrypt_token(access_token)
        integration.token_expires_at = token_expires_at
        if refresh_token:
            # Google may rotate the refresh token
            integration.refresh_token = encrypt_token(refresh_token)
        db.commit()

    @staticmethod
    def mark_disabled(db: Session, integration: GoogleCalendarIntegration) -> None:
        integration.enabled = False
        db.commit()

    @staticmethod
    def stamp_last_sync(db: Session, integration: GoogleCalendarIntegration, at: datetime) -> None:
        integration.last_sync_at = at
        db.commit()

    @staticmethod
    def delete_for_user(db: Session, user_id: int) -> bool:
        """Hard delete; returns False when there was nothing to delete"""
        deleted = (
            db.query(GoogleCalendarIntegration)
            .filter(GoogleCalendarIntegration.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return bool(deleted)
