"""
Display models for users, events and registrations.

These are read-only snapshots built by the mappers in
`events_service.mappers`. `to_dict()` uses the same camelCase keys the Parse
Server returns, so a serialised model can be mapped again without change.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

ATTENDEE = "Attendee"
ORGANIZER = "Organizer"
ROLES = (ATTENDEE, ORGANIZER)

STATUS_REGISTERED = "registered"
STATUS_CANCELED = "canceled"


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class User:
    object_id: str
    username: str
    email: str
    role: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_attendee(self) -> bool:
        return self.role == ATTENDEE

    @property
    def is_organizer(self) -> bool:
        return self.role == ORGANIZER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objectId": self.object_id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "name": self.name,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class PosterImage:
    name: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url}


@dataclass
class Event:
    object_id: str
    title: str
    location: str
    date: Optional[datetime]
    organizer: User
    attendees: List[str] = field(default_factory=list)
    poster: Optional[PosterImage] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_past(self, now: Optional[datetime] = None) -> bool:
        """
        True when the event date is now or earlier. Events without a date are
        never considered past.
        """
        if self.date is None:
            return False
        if now is None:
            now = datetime.now(self.date.tzinfo)
        return self.date <= now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objectId": self.object_id,
            "title": self.title,
            "location": self.location,
            "date": iso(self.date),
            "attendees": list(self.attendees),
            "eventPosterImage": self.poster.to_dict() if self.poster else None,
            "organizer": self.organizer.to_dict(),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class Registration:
    object_id: str
    event: Event
    attendee: User
    registered: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objectId": self.object_id,
            "event": self.event.to_dict(),
            "attendee": self.attendee.to_dict(),
            "registered": self.registered,
            "status": self.status,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class UpcomingRegistration:
    """One row of the `listUpcomingEvents` cloud function result."""

    registration_id: str
    registration_date: Optional[datetime]
    event: Event
    status: str
    registered: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registrationId": self.registration_id,
            "registrationDate": iso(self.registration_date),
            "event": self.event.to_dict(),
            "status": self.status,
            "registered": self.registered,
        }
