"""Derive meeting-lead fields from a Google Calendar event"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...shared.clock import parse_timestamp, utcnow
from ...utils.sanitization import html_to_text
from .google_client import CalendarEvent

MAX_DESCRIPTION_LENGTH = 1000


@dataclass
class EventEnrichment:
    description: Optional[str] = None
    attendees: list[str] = field(default_factory=list)
    location: Optional[str] = None
    conference_link: Optional[str] = None
    duration_minutes: Optional[int] = None

    def as_columns(self) -> dict:
        return {
            "description": self.description,
            "attendees": self.attendees,
            "location": self.location,
            "conference_link": self.conference_link,
            "duration_minutes": self.duration_minutes,
        }


def extract_conference_link(event: CalendarEvent) -> Optional[str]:
    """Meet link first, else the first video entry point"""
    if event.hangout_link:
        return event.hangout_link
    if event.conference_data:
        for entry_point in event.conference_data.entry_points:
            if entry_point.entry_point_type == "video" and entry_point.uri:
                return entry_point.uri
    return None


def extract_attendees(event: CalendarEvent) -> list[str]:
    # Rooms and equipment show up as resource attendees
    return [a.email for a in event.attendees if a.email and not a.resource]


def compute_duration_minutes(event: CalendarEvent) -> Optional[int]:
    """Minutes between start and end; None for all-day events"""
    start = parse_timestamp(event.start.date_time)
    end = parse_timestamp(event.end.date_time)
    if not start or not end or end < start:
        return None
    return int((end - start).total_seconds() // 60)


def event_start(event: CalendarEvent) -> datetime:
    """When the meeting happens: dateTime, else the all-day date at midnight, else now"""
    return parse_timestamp(event.start.date_time) or parse_timestamp(event.start.date) or utcnow()


def enrich_event(event: CalendarEvent) -> EventEnrichment:
    location = event.location.strip() if event.location else None
    return EventEnrichment(
        description=html_to_text(event.description, max_length=MAX_DESCRIPTION_LENGTH),
        attendees=extract_attendees(event),
        location=location or None,
        conference_link=extract_conference_link(event),
        duration_minutes=compute_duration_minutes(event),
    )
