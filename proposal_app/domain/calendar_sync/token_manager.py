"""
Google token lifecycle: PKCE authorization, code exchange, refresh-before-expiry
and disconnect.
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from ...cache import Cache
from ...config import (
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
    PKCE_VERIFIER_TTL_SECONDS,
    TOKEN_REFRESH_MARGIN_MINUTES,
)
from ...models_google_calendar import GoogleCalendarIntegration
from ...security_utils import decrypt_optional_token
from ...shared.clock import utcnow
from .exceptions import CalendarNotConfigured, TokenExpired, TokenRefreshError
from .google_client import GOOGLE_AUTH_URL, GOOGLE_CALENDAR_SCOPES, GoogleApiClient
from .repository import CredentialRepository, store_errors

logger = logging.getLogger(__name__)

PKCE_KEY_PREFIX = "calendar_pkce"


def generate_code_verifier() -> str:
    """43-128 chars from the unreserved set (RFC 7636); token_urlsafe(64) gives 86"""
    return secrets.token_urlsafe(64)


def code_challenge_for(verifier: str) -> str:
    """S256 challenge: URL-safe base64 of the SHA-256 digest, without padding"""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass
class AuthorizationRequest:
    authorization_url: str
    state: str


@dataclass
class ExchangeResult:
    email: Optional[str]


class PkceVerifierStore:
    """Short-lived, single-use verifier slots keyed by the OAuth state"""

    def __init__(self, cache: Optional[Cache] = None, ttl: int = PKCE_VERIFIER_TTL_SECONDS):
        self.cache = cache or Cache()
        self.ttl = ttl

    def save(self, state: str, verifier: str) -> None:
        self.cache.set(f"{PKCE_KEY_PREFIX}:{state}", verifier, self.ttl)

    def take(self, state: str) -> Optional[str]:
        return self.cache.pop(f"{PKCE_KEY_PREFIX}:{state}")


class TokenManager:
    """Owns Google credentials for one database session"""

    def __init__(
        self,
        db: Session,
        google: Optional[GoogleApiClient] = None,
        verifier_store: Optional[PkceVerifierStore] = None,
        client_id: Optional[str] = GOOGLE_CLIENT_ID,
        client_secret: Optional[str] = GOOGLE_CLIENT_SECRET,
        redirect_uri: str = GOOGLE_REDIRECT_URI,
        refresh_margin: timedelta = timedelta(minutes=TOKEN_REFRESH_MARGIN_MINUTES),
    ):
        self.db = db
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.refresh_margin = refresh_margin
        self.google = google or GoogleApiClient(client_id=client_id, client_secret=client_secret)
        self.verifier_store = verifier_store or PkceVerifierStore()
        self.repo = CredentialRepository()

    def _require_server_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise CalendarNotConfigured("Google Calendar not configured")

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def begin_authorization(self, redirect_uri: Optional[str] = None) -> AuthorizationRequest:
        """Create a PKCE pair, park the verifier and build Google's consent URL"""
        if not self.client_id:
            raise CalendarNotConfigured("Google Calendar not configured")

        verifier = generate_code_verifier()
        state = secrets.token_urlsafe(24)
        self.verifier_store.save(state, verifier)

        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
            # offline + consent: Google only issues a refresh token on a fresh consent
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
            "code_challenge": code_challenge_for(verifier),
            "code_challenge_method": "S256",
            "state": state,
        }
        return AuthorizationRequest(authorization_url=f"{GOOGLE_AUTH_URL}?{urlencode(params)}", state=state)

    def take_verifier(self, state: str) -> Optional[str]:
        """Fetch and discard the verifier parked for this state"""
        return self.verifier_store.take(state)

    async def exchange_code(
        self, user_id: int, code: str, code_verifier: str, redirect_uri: Optional[str] = None
    ) -> ExchangeResult:
        """Exchange an authorization code and store the resulting credentials"""
        self._require_server_credentials()

        grant = await self.google.exchange_authorization_code(
            code=code,
            code_verifier=code_verifier,
            redirect_uri=redirect_uri or self.redirect_uri,
        )
        user_info = await self.google.get_user_info(grant.access_token)

        if not grant.refresh_token:
            logger.warning(f"⚠️ Google returned no refresh token for user {user_id}")

        with store_errors(self.db, "save Google credentials"):
            self.repo.upsert_tokens(
                self.db,
                user_id=user_id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                token_expires_at=utcnow() + timedelta(seconds=grant.expires_in),
                google_email=user_info.email,
            )

        logger.info(f"✅ Google Calendar connected for user {user_id}")
        return ExchangeResult(email=user_info.email)

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def needs_refresh(self, integration: GoogleCalendarIntegration) -> bool:
        expires_at = integration.token_expires_at
        return expires_at is None or expires_at - utcnow() < self.refresh_margin

    def _disable(self, integration: GoogleCalendarIntegration) -> None:
        with store_errors(self.db, "mark Google integration as needing reconnect"):
            self.repo.mark_disabled(self.db, integration)
        logger.warning(f"⚠️ Google Calendar for user {integration.user_id} needs reconnect")

    async def ensure_fresh_token(self, integration: GoogleCalendarIntegration) -> str:
        """
        Return a usable access token, refreshing it when it expires within the
        safety margin.

        Raises TokenExpired when the user must re-authorize: the integration is
        disabled, no refresh token exists (legacy implicit-grant sessions), or
        Google reports the refresh token as revoked (invalid_grant). Any other
        refresh failure raises TokenRefreshError and leaves the record alone.
        """
        if not integration.enabled:
            raise TokenExpired()

        if not self.needs_refresh(integration):
            access_token = decrypt_optional_token(integration.access_token)
            if access_token:
                return access_token

        refresh_token = decrypt_optional_token(integration.refresh_token)
        if not refresh_token:
            self._disable(integration)
            raise TokenExpired()

        self._require_server_credentials()
        logger.info(f"🔄 Refreshing Google Calendar token for user {integration.user_id}")
        try:
            grant = await self.google.refresh_access_token(refresh_token)
        except TokenRefreshError as e:
            if e.is_revoked:
                self._disable(integration)
                raise TokenExpired() from e
            raise

        with store_errors(self.db, "save refreshed Google token"):
            self.repo.update_access_token(
                self.db,
                integration,
                access_token=grant.access_token,
                token_expires_at=utcnow() + timedelta(seconds=grant.expires_in),
                refresh_token=grant.refresh_token,
            )
        logger.info("✅ Google Calendar token refreshed successfully")
        return grant.access_token

    # ------------------------------------------------------------------
    # Disconnect
    # ------------------------------------------------------------------

    async def disconnect(self, user_id: int) -> bool:
        """Revoke (best effort) and delete the user's credentials. Idempotent."""
        integration = self.repo.get_by_user(self.db, user_id)
        if not integration:
            return False

        token = decrypt_optional_token(integration.refresh_token) or decrypt_optional_token(
            integration.access_token
        )
        if token:
            try:
                revoked = await self.google.revoke_token(token)
                if not revoked:
                    logger.warning(f"Google refused to revoke token for user {user_id}")
            except httpx.HTTPError as e:
                logger.warning(f"Failed to revoke Google tokens: {str(e)}")

        with store_errors(self.db, "delete Google credentials"):
            deleted = self.repo.delete_for_user(self.db, user_id)
        logger.info(f"✅ Google Calendar disconnected for user {user_id}")
        return deleted
