"""
View-model mappers: raw Parse records -> display models.

All mappers are pure and total. Relations hidden by access control arrive as
missing keys, nulls or bare pointers; substituting a placeholder identity
happens here and nowhere else.
"""

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from event_manager.models import (
    ATTENDEE,
    ORGANIZER,
    STATUS_CANCELED,
    STATUS_REGISTERED,
    Event,
    PosterImage,
    Registration,
    UpcomingRegistration,
    User,
)

# A relation on a raw record; None when redacted or never set
RawRelation = Optional[Mapping[str, Any]]

UNKNOWN_ID = "unknown"
ORGANIZER_DISPLAY_NAME = "Event Organizer"
ATTENDEE_DISPLAY_NAME = "Event Attendee"


def parse_dt(val: Any) -> Optional[datetime]:
    """
    Read a timestamp as stored by Parse, without timezone conversion.

    Accepts datetime objects, ISO-8601 strings (with 'Z' or an offset) and
    Parse date objects ({"__type": "Date", "iso": ...}).

    Returns:
        datetime: The parsed value, or None if missing/invalid.
    """
    if isinstance(val, datetime):
        return val
    if isinstance(val, Mapping):
        val = val.get("iso")
    if not val or not isinstance(val, str):
        return None
    try:
        if val.endswith("Z"):
            val = val[:-1] + "+00:00"
        return datetime.fromisoformat(val)
    except ValueError:
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _text(raw: Mapping[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    return value if isinstance(value, str) and value else default


def _as_dict(raw: Any) -> Optional[Mapping[str, Any]]:
    """Normalise a record that may already be a display model."""
    if raw is None:
        return None
    if hasattr(raw, "to_dict"):
        return raw.to_dict()
    if isinstance(raw, Mapping):
        return raw
    return None


# --- IDENTITIES ---
def placeholder_organizer() -> User:
    """Stand-in organizer for events whose organizer is not visible."""
    now = _now()
    return User(
        object_id=UNKNOWN_ID,
        username=ORGANIZER_DISPLAY_NAME,
        email="",
        role=ORGANIZER,
        created_at=now,
        updated_at=now,
    )


def placeholder_attendee() -> User:
    now = _now()
    return User(
        object_id=UNKNOWN_ID,
        username=ATTENDEE_DISPLAY_NAME,
        email="",
        role=ATTENDEE,
        created_at=now,
        updated_at=now,
    )


def _map_user(raw: Mapping[str, Any], display_name: str, role: str, stamp_created: bool) -> User:
    created_at = parse_dt(raw.get("createdAt"))
    if created_at is None and stamp_created:
        created_at = _now()
    return User(
        object_id=_text(raw, "objectId"),
        username=_text(raw, "username", display_name),
        email=_text(raw, "email"),
        role=_text(raw, "role", role),
        name=raw.get("name") or None,
        created_at=created_at,
        updated_at=parse_dt(raw.get("updatedAt")),
    )


def map_identity(raw: Union[RawRelation, User]) -> Optional[User]:
    """
    Map the signed-in Parse user. Role defaults to Attendee.

    Returns:
        User, or None when there is no usable user record.
    """
    data = _as_dict(raw)
    if not data or not data.get("objectId"):
        return None
    return _map_user(data, "", ATTENDEE, stamp_created=False)


def map_organizer(raw: Union[RawRelation, User]) -> User:
    """
    Map an event's organizer, substituting the placeholder when absent.
    """
    data = _as_dict(raw)
    if not data:
        return placeholder_organizer()
    return _map_user(data, ORGANIZER_DISPLAY_NAME, ORGANIZER, stamp_created=True)


def map_attendee(raw: Union[RawRelation, User]) -> User:
    data = _as_dict(raw)
    if not data:
        return placeholder_attendee()
    return _map_user(data, ATTENDEE_DISPLAY_NAME, ATTENDEE, stamp_created=True)


# --- EVENTS ---
def _map_poster(raw: Any) -> Optional[PosterImage]:
    if not isinstance(raw, Mapping) or not raw.get("url"):
        return None
    return PosterImage(name=_text(raw, "name"), url=raw["url"])


def _attendee_ids(raw: Any) -> List[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    ids = []
    for item in raw:
        # Stored either as plain ids or as pointers
        if isinstance(item, Mapping):
            item = item.get("objectId")
        if isinstance(item, str) and item:
            ids.append(item)
    return ids


def map_event(raw: Union[Mapping[str, Any], Event]) -> Event:
    """
    Map a raw Event record (organizer possibly redacted) to an Event.

    Mapping an Event, or the dict produced by Event.to_dict(), returns an
    equal Event.
    """
    if isinstance(raw, Event):
        return raw

    data = _as_dict(raw) or {}
    return Event(
        object_id=_text(data, "objectId"),
        title=_text(data, "title"),
        location=_text(data, "location"),
        date=parse_dt(data.get("date")),
        organizer=map_organizer(data.get("organizer")),
        attendees=_attendee_ids(data.get("attendees")),
        poster=_map_poster(data.get("eventPosterImage")),
        created_at=parse_dt(data.get("createdAt")),
        updated_at=parse_dt(data.get("updatedAt")),
    )


# --- REGISTRATIONS ---
def _status(data: Mapping[str, Any], registered: bool) -> str:
    status = data.get("status")
    if status in (STATUS_REGISTERED, STATUS_CANCELED):
        return status
    return STATUS_REGISTERED if registered else STATUS_CANCELED


def map_registration(raw: Union[Mapping[str, Any], Registration]) -> Registration:
    if isinstance(raw, Registration):
        return raw

    data = _as_dict(raw) or {}
    registered = bool(data.get("registered", False))
    return Registration(
        object_id=_text(data, "objectId"),
        event=map_event(data.get("event") or {}),
        attendee=map_attendee(data.get("attendee")),
        registered=registered,
        status=_status(data, registered),
        created_at=parse_dt(data.get("createdAt")),
        updated_at=parse_dt(data.get("updatedAt")),
    )


def map_upcoming_registration(raw: Union[Mapping[str, Any], UpcomingRegistration]) -> UpcomingRegistration:
    """
    Map one entry of the listUpcomingEvents result.
    """
    if isinstance(raw, UpcomingRegistration):
        return raw

    data = _as_dict(raw) or {}
    registered = bool(data.get("registered", True))
    return UpcomingRegistration(
        registration_id=_text(data, "registrationId"),
        registration_date=parse_dt(data.get("registrationDate")),
        event=map_event(data.get("event") or {}),
        status=_status(data, registered),
        registered=registered,
    )
