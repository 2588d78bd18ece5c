"""Meeting lead repository - Database operations for detected meetings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Proposal
from ...models_google_calendar import MeetingLead

ENRICHMENT_COLUMNS = ("description", "attendees", "location", "conference_link", "duration_minutes")


class MeetingLeadRepository:
    """Repository for meeting lead database operations"""

    @staticmethod
    def list_for_user(db: Session, user_id: int, status: Optional[str] = None) -> list[MeetingLead]:
        """Leads for a user ordered by meeting time"""
        query = db.query(MeetingLead).filter(MeetingLead.user_id == user_id)
        if status:
            query = query.filter(MeetingLead.status == status)
        return query.order_by(MeetingLead.event_at.asc(), MeetingLead.id.asc()).all()

    @staticmethod
    def get_by_id(db: Session, lead_id: int, user_id: int) -> Optional[MeetingLead]:
        return (
            db.query(MeetingLead)
            .filter(MeetingLead.id == lead_id, MeetingLead.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_by_event(db: Session, user_id: int, google_event_id: str) -> Optional[MeetingLead]:
        return (
            db.query(MeetingLead)
            .filter(MeetingLead.user_id == user_id, MeetingLead.google_event_id == google_event_id)
            .first()
        )

    @staticmethod
    def upsert_from_event(
        db: Session,
        user_id: int,
        google_event_id: str,
        title: str,
        client_name: str,
        event_at: datetime,
        enrichment: dict,
    ) -> tuple[MeetingLead, bool]:
        """
        Insert a pending lead for a new event, or refresh an existing one in place.
        Never touches status or linked_proposal_id of an existing lead.
        Does not commit. Returns (lead, created).
        """
        lead = MeetingLeadRepository.get_by_event(db, user_id, google_event_id)
        if lead is None:
            new_lead = MeetingLead(
                user_id=user_id,
                google_event_id=google_event_id,
                title=title,
                detected_client_name=client_name,
                event_at=event_at,
                status="pending",
                **{column: enrichment.get(column) for column in ENRICHMENT_COLUMNS},
            )
            try:
                # Savepoint: an overlapping sync may have inserted the same event first
                with db.begin_nested():
                    db.add(new_lead)
                    db.flush()
                return new_lead, True
            except IntegrityError:
                lead = MeetingLeadRepository.get_by_event(db, user_id, google_event_id)
                if lead is None:
                    raise

        lead.title = title
        lead.detected_client_name = client_name
        lead.event_at = event_at
        for column in ENRICHMENT_COLUMNS:
            setattr(lead, column, enrichment.get(column))
        return lead, False

    @staticmethod
    def update_status(db: Session, lead: MeetingLead, status: str, proposal_id: Optional[int] = None) -> MeetingLead:
        lead.status = status
        if proposal_id is not None:
            lead.linked_proposal_id = proposal_id
        db.commit()
        db.refresh(lead)
        return lead

    @staticmethod
    def get_proposal(db: Session, proposal_id: int, user_id: int) -> Optional[Proposal]:
        return db.query(Proposal).filter(Proposal.id == proposal_id, Proposal.user_id == user_id).first()

    @staticmethod
    def create_proposal(db: Session, user_id: int, **proposal_data) -> Proposal:
        """Add a proposal without committing, so it lands together with the lead link"""
        proposal = Proposal(user_id=user_id, **proposal_data)
        db.add(proposal)
        db.flush()
        return proposal
