from .event import (
    ConcertDetails,
    Event,
    EventDetails,
    MeetupDetails,
    SeminarDetails,
    Speaker,
    WorkshopDetails,
    parse_event_details,
)
from .organization import Organization, OrganizationMember
from .registration import Registration

__all__ = [
    "ConcertDetails",
    "Event",
    "EventDetails",
    "MeetupDetails",
    "Organization",
    "OrganizationMember",
    "Registration",
    "SeminarDetails",
    "Speaker",
    "WorkshopDetails",
    "parse_event_details",
]
