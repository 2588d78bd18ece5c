"""
Google Calendar Integration Models
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class GoogleCalendarIntegration(Base):
    """One credential record per user. enabled=False means "needs reconnect"."""

    __tablename__ = "google_calendar_integrations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)  # None for legacy implicit-grant sessions
    token_expires_at = Column(DateTime, nullable=True)

    # Google user info
    google_user_email = Column(String(255), nullable=True)
    google_calendar_id = Column(String(500), nullable=False, default="primary")

    enabled = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")


class MeetingLead(Base):
    """Calendar event detected as a prospective client meeting"""

    __tablename__ = "meeting_leads"
    __table_args__ = (UniqueConstraint("user_id", "google_event_id", name="uq_meeting_lead_user_event"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    google_event_id = Column(String(1024), nullable=False)

    title = Column(Text, nullable=False)  # raw event summary, verbatim
    detected_client_name = Column(String(255), nullable=True)
    event_at = Column(DateTime, nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, linked, ignored
    linked_proposal_id = Column(Integer, ForeignKey("proposals.id"), nullable=True)

    # Enrichment, refreshed on every sync
    description = Column(Text, nullable=True)
    attendees = Column(JSON, nullable=True)
    location = Column(String(1024), nullable=True)
    conference_link = Column(String(1024), nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    linked_proposal = relationship("Proposal")
