"""Meeting lead router - FastAPI endpoints for detected calendar meetings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import LinkProposalRequest, MeetingLeadResponse, ProposalFromLeadResponse, ProposalSummary
from .service import LeadStatus, MeetingLeadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meeting-leads", tags=["Meeting Leads"])


def get_meeting_lead_service(db: Session = Depends(get_db)) -> MeetingLeadService:
    """Dependency injection for MeetingLeadService"""
    return MeetingLeadService(db)


@router.get("", response_model=list[MeetingLeadResponse])
async def list_meeting_leads(
    status: Optional[LeadStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MeetingLeadService = Depends(get_meeting_lead_service),
):
    """Meetings detected from the calendar, ordered by meeting time"""
    return service.list_leads(current_user, status)


@router.post("/{lead_id}/ignore", response_model=MeetingLeadResponse)
async def ignore_meeting_lead(
    lead_id: int,
    current_user: User = Depends(get_current_user),
    service: MeetingLeadService = Depends(get_meeting_lead_service),
):
    return service.ignore(lead_id, current_user)


@router.post("/{lead_id}/restore", response_model=MeetingLeadResponse)
async def restore_meeting_lead(
    lead_id: int,
    current_user: User = Depends(get_current_user),
    service: MeetingLeadService = Depends(get_meeting_lead_service),
):
    """Undo an ignore"""
    return service.restore(lead_id, current_user)


@router.post("/{lead_id}/link", response_model=MeetingLeadResponse)
async def link_meeting_lead(
    lead_id: int,
    data: LinkProposalRequest,
    current_user: User = Depends(get_current_user),
    service: MeetingLeadService = Depends(get_meeting_lead_service),
):
    """Attach the lead to an existing proposal"""
    return service.link(lead_id, data.proposal_id, current_user)


@router.post("/{lead_id}/proposal", response_model=ProposalFromLeadResponse)
async def create_proposal_from_meeting_lead(
    lead_id: int,
    current_user: User = Depends(get_current_user),
    service: MeetingLeadService = Depends(get_meeting_lead_service),
):
    """Create a new-lead proposal from the meeting and link them"""
    proposal, lead = service.create_proposal(lead_id, current_user)
    return ProposalFromLeadResponse(
        proposal=ProposalSummary.model_validate(proposal),
        lead=MeetingLeadResponse.model_validate(lead),
    )
