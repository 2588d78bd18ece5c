"""Calendar sync schemas - request/response bodies for the Google Calendar routes"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CalendarStatusResponse(BaseModel):
    connected: bool
    enabled: Optional[bool] = None
    needs_reconnect: bool = False
    user_email: Optional[str] = None
    calendar_id: Optional[str] = None
    last_sync_at: Optional[datetime] = None


class ConnectResponse(BaseModel):
    authorization_url: str
    state: str


class CallbackRequest(BaseModel):
    """
    Body posted by the frontend after Google redirects back with ?code=.
    The verifier is normally looked up by state; SPA clients that kept it
    themselves may send it directly.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(min_length=1)
    state: Optional[str] = None
    code_verifier: Optional[str] = Field(default=None, alias="codeVerifier")
    redirect_uri: Optional[str] = Field(default=None, alias="redirectUri")


class CallbackResponse(BaseModel):
    success: bool = True
    email: Optional[str] = None


class SyncResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    triggered: bool = True
    reason: Optional[str] = None
    new_event_count: int = Field(default=0, serialization_alias="newEventCount")
    updated_event_count: int = Field(default=0, serialization_alias="updatedEventCount")


class DisconnectResponse(BaseModel):
    success: bool = True
    message: str = "Google Calendar disconnected"
