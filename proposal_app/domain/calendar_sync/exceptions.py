"""Calendar sync error taxonomy

Every failure the pipeline surfaces carries a machine-readable ``code`` so the
frontend can tell "reconnect Google" apart from a generic "sync failed" toast.
"""

from typing import Optional


class CalendarSyncError(Exception):
    """Base class for calendar integration failures"""

    code = "CALENDAR_ERROR"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class CalendarNotConfigured(CalendarSyncError):
    """Google Calendar is not configured on the server"""

    code = "NOT_CONFIGURED"
    status_code = 500


class NotConnected(CalendarSyncError):
    """Google Calendar is not connected. Connect it first."""

    code = "NOT_CONNECTED"
    status_code = 404


class TokenExpired(CalendarSyncError):
    """Google Calendar needs to be reconnected"""

    code = "TOKEN_EXPIRED"
    status_code = 409


class AuthExchangeError(CalendarSyncError):
    """Google rejected the authorization code"""

    code = "AUTH_EXCHANGE_FAILED"
    status_code = 400

    def __init__(self, message: Optional[str] = None, provider_error: Optional[str] = None):
        super().__init__(message)
        self.provider_error = provider_error


class TokenRefreshError(CalendarSyncError):
    """Google could not refresh the access token"""

    code = "TOKEN_REFRESH_FAILED"
    status_code = 502

    def __init__(self, message: Optional[str] = None, provider_error: Optional[str] = None):
        super().__init__(message)
        self.provider_error = provider_error

    @property
    def is_revoked(self) -> bool:
        """invalid_grant is the only refresh error that means the grant is gone for good"""
        return self.provider_error == "invalid_grant"


class CalendarFetchError(CalendarSyncError):
    """Failed to fetch events from Google Calendar"""

    code = "CALENDAR_FETCH_FAILED"
    status_code = 502

    def __init__(self, message: Optional[str] = None, provider_status: Optional[int] = None):
        super().__init__(message)
        self.provider_status = provider_status


class CalendarUnauthorized(CalendarFetchError):
    """Google answered 401 to a calendar request"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, provider_status=401)


class StoreError(CalendarSyncError):
    """Failed to read or write calendar data"""

    code = "STORE_ERROR"
    status_code = 500


class MeetingLeadNotFound(CalendarSyncError):
    """Meeting lead not found"""

    code = "LEAD_NOT_FOUND"
    status_code = 404


class InvalidLeadTransition(CalendarSyncError):
    """Meeting lead cannot move to the requested status"""

    code = "INVALID_TRANSITION"
    status_code = 409
