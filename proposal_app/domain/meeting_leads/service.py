"""Meeting lead service - status transitions driven by the user"""

import logging
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Proposal, User
from ...models_google_calendar import MeetingLead
from ..calendar_sync.exceptions import InvalidLeadTransition, MeetingLeadNotFound
from ..calendar_sync.repository import store_errors
from .repository import MeetingLeadRepository

logger = logging.getLogger(__name__)


class LeadStatus(str, Enum):
    PENDING = "pending"
    LINKED = "linked"
    IGNORED = "ignored"


# linked is terminal
ALLOWED_TRANSITIONS = {
    LeadStatus.PENDING: {LeadStatus.LINKED, LeadStatus.IGNORED},
    LeadStatus.IGNORED: {LeadStatus.PENDING},
    LeadStatus.LINKED: set(),
}


def can_transition(current: str, target: LeadStatus) -> bool:
    try:
        return target in ALLOWED_TRANSITIONS[LeadStatus(current)]
    except ValueError:
        return False


class MeetingLeadService:
    """Service layer for meeting lead business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MeetingLeadRepository()

    def list_leads(self, user: User, status: Optional[LeadStatus] = None) -> list[MeetingLead]:
        with store_errors(self.db, "list meeting leads"):
            return self.repo.list_for_user(self.db, user.id, status.value if status else None)

    def get_lead(self, lead_id: int, user: User) -> MeetingLead:
        with store_errors(self.db, "load meeting lead"):
            lead = self.repo.get_by_id(self.db, lead_id, user.id)
        if not lead:
            raise MeetingLeadNotFound()
        return lead

    def _transition(self, lead: MeetingLead, target: LeadStatus, proposal_id: Optional[int] = None) -> MeetingLead:
        if not can_transition(lead.status, target):
            raise InvalidLeadTransition(f"Meeting lead is {lead.status} and cannot become {target.value}")
        with store_errors(self.db, "update meeting lead"):
            updated = self.repo.update_status(self.db, lead, target.value, proposal_id=proposal_id)
        logger.info(f"📌 Meeting lead {lead.id} → {target.value}")
        return updated

    def ignore(self, lead_id: int, user: User) -> MeetingLead:
        return self._transition(self.get_lead(lead_id, user), LeadStatus.IGNORED)

    def restore(self, lead_id: int, user: User) -> MeetingLead:
        """Undo a dismissal"""
        return self._transition(self.get_lead(lead_id, user), LeadStatus.PENDING)

    def link(self, lead_id: int, proposal_id: int, user: User) -> MeetingLead:
        lead = self.get_lead(lead_id, user)
        with store_errors(self.db, "load proposal"):
            proposal = self.repo.get_proposal(self.db, proposal_id, user.id)
        if not proposal:
            raise MeetingLeadNotFound("Proposal not found")
        return self._transition(lead, LeadStatus.LINKED, proposal_id=proposal.id)

    def create_proposal(self, lead_id: int, user: User) -> tuple[Proposal, MeetingLead]:
        """Turn a pending lead into a new-lead proposal and link them"""
        lead = self.get_lead(lead_id, user)
        if not can_transition(lead.status, LeadStatus.LINKED):
            raise InvalidLeadTransition(f"Meeting lead is {lead.status} and cannot become linked")

        client_name = lead.detected_client_name or "Calendar client"
        notes = f"Created from meeting: {lead.title}\nDate: {lead.event_at.strftime('%d/%m/%Y %H:%M')} UTC"

        with store_errors(self.db, "create proposal from meeting lead"):
            proposal = self.repo.create_proposal(
                self.db,
                user.id,
                client_name=client_name,
                client_company=lead.detected_client_name,
                status="new_lead",
                monthly_value=0,
                setup_value=0,
                total_value=0,
                notes=notes,
            )
            lead = self.repo.update_status(self.db, lead, LeadStatus.LINKED.value, proposal_id=proposal.id)
            self.db.refresh(proposal)

        logger.info(f"✅ Proposal {proposal.id} created from meeting lead {lead.id}")
        return proposal, lead
