"""Meeting lead schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MeetingLeadResponse(BaseModel):
    """Schema for meeting lead response"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    google_event_id: str
    title: str
    detected_client_name: Optional[str] = None
    event_at: datetime
    status: str
    linked_proposal_id: Optional[int] = None
    description: Optional[str] = None
    attendees: Optional[list[str]] = None
    location: Optional[str] = None
    conference_link: Optional[str] = None
    duration_minutes: Optional[int] = None


class LinkProposalRequest(BaseModel):
    proposal_id: int


class ProposalSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_name: str
    client_company: Optional[str] = None
    status: str
    notes: Optional[str] = None


class ProposalFromLeadResponse(BaseModel):
    proposal: ProposalSummary
    lead: MeetingLeadResponse
