"""
Google Calendar Integration Routes
Handles OAuth connection and meeting sync
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET
from ...database import get_db
from ...models import User
from .google_client import GoogleApiClient
from .scheduler import SyncOutcome, SyncScheduler, sync_scheduler
from .schemas import (
    CalendarStatusResponse,
    CallbackRequest,
    CallbackResponse,
    ConnectResponse,
    DisconnectResponse,
    SyncResponse,
)
from .service import CalendarSyncService
from .token_manager import PkceVerifierStore, TokenManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["google-calendar"])


def get_google_client() -> GoogleApiClient:
    return GoogleApiClient(client_id=GOOGLE_CLIENT_ID, client_secret=GOOGLE_CLIENT_SECRET)


def get_verifier_store() -> PkceVerifierStore:
    return PkceVerifierStore()


def get_token_manager(
    db: Session = Depends(get_db),
    google: GoogleApiClient = Depends(get_google_client),
    verifier_store: PkceVerifierStore = Depends(get_verifier_store),
) -> TokenManager:
    return TokenManager(
        db,
        google=google,
        verifier_store=verifier_store,
        client_id=google.client_id,
        client_secret=google.client_secret,
    )


def get_sync_service(
    db: Session = Depends(get_db),
    token_manager: TokenManager = Depends(get_token_manager),
) -> CalendarSyncService:
    return CalendarSyncService(db, token_manager=token_manager)


def get_scheduler() -> SyncScheduler:
    return sync_scheduler


def _sync_response(outcome: SyncOutcome) -> SyncResponse:
    result = outcome.result
    return SyncResponse(
        triggered=outcome.triggered,
        reason=outcome.reason,
        new_event_count=result.new_event_count if result else 0,
        updated_event_count=result.updated_event_count if result else 0,
    )


@router.get("/status", response_model=CalendarStatusResponse)
async def get_google_calendar_status(
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_sync_service),
):
    """Get Google Calendar connection status"""
    integration = service.get_integration(current_user.id)

    if not integration:
        return CalendarStatusResponse(connected=False)

    return CalendarStatusResponse(
        connected=True,
        enabled=integration.enabled,
        needs_reconnect=not integration.enabled,
        user_email=integration.google_user_email,
        calendar_id=integration.google_calendar_id,
        last_sync_at=integration.last_sync_at,
    )


@router.get("/connect", response_model=ConnectResponse)
async def initiate_google_calendar_oauth(
    current_user: User = Depends(get_current_user),
    token_manager: TokenManager = Depends(get_token_manager),
):
    """Initiate Google Calendar OAuth flow (authorization code + PKCE)"""
    request = token_manager.begin_authorization()
    logger.info(f"Google Calendar OAuth initiated for user: {current_user.id}")
    return ConnectResponse(authorization_url=request.authorization_url, state=request.state)


@router.post("/callback", response_model=CallbackResponse)
async def handle_google_calendar_callback(
    body: CallbackRequest,
    current_user: User = Depends(get_current_user),
    token_manager: TokenManager = Depends(get_token_manager),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Handle Google Calendar OAuth callback"""
    code_verifier = body.code_verifier
    if body.state:
        # Discard the parked verifier whatever happens next
        stored_verifier = token_manager.take_verifier(body.state)
        code_verifier = code_verifier or stored_verifier

    if not code_verifier:
        raise HTTPException(status_code=400, detail="Authorization session expired. Please connect again.")

    result = await token_manager.exchange_code(
        current_user.id,
        code=body.code,
        code_verifier=code_verifier,
        redirect_uri=body.redirect_uri,
    )
    # A fresh connection should sync right away rather than wait out an old claim
    scheduler.release(current_user.id)
    return CallbackResponse(email=result.email)


@router.post("/sync", response_model=SyncResponse)
async def sync_google_calendar(
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Sync now (subject to the minimum interval between syncs)"""
    outcome = await scheduler.trigger(current_user.id, service)
    return _sync_response(outcome)


@router.post("/sync/auto", response_model=SyncResponse)
async def auto_sync_google_calendar(
    current_user: User = Depends(get_current_user),
    service: CalendarSyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Called when the app opens: syncs only if the last sync is older than the interval"""
    outcome = await scheduler.run_if_due(current_user.id, service)
    return _sync_response(outcome)


@router.post("/disconnect", response_model=DisconnectResponse)
async def disconnect_google_calendar(
    current_user: User = Depends(get_current_user),
    token_manager: TokenManager = Depends(get_token_manager),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Disconnect Google Calendar integration"""
    await token_manager.disconnect(current_user.id)
    scheduler.release(current_user.id)
    return DisconnectResponse()
