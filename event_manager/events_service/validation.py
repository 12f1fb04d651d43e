"""
Create-event form validation.
Runs locally before any call to the Parse Server.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from event_manager.errors import ValidationError
from event_manager.events_service.mappers import parse_dt

TITLE_MIN_LENGTH = 3
LOCATION_MIN_LENGTH = 3


def _field(form: Mapping[str, Any], name: str, label: str, errors: Dict[str, str]) -> str:
    """Stripped text value of a field; non-text JSON values are a field error."""
    value = form.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        errors[name] = f"{label} must be text"
        return ""
    return value.strip()


@dataclass
class EventDraft:
    title: str
    location: str
    date: datetime

    def date_iso(self) -> str:
        """UTC ISO-8601 string with a trailing 'Z', as the cloud function expects."""
        # Naive datetime-local values are taken as server local time
        utc = self.date.astimezone(timezone.utc)
        return utc.isoformat().replace("+00:00", "Z")


def validate_event_form(form: Mapping[str, Any], now: Optional[datetime] = None) -> EventDraft:
    """
    Validate the create-event form.

    Args:
        form (dict): Submitted fields: title, location, date.
        now (datetime, optional): Reference time for the "future" check.

    Returns:
        EventDraft: Cleaned values.

    Raises:
        ValidationError: With one message per invalid field.
    """
    errors: Dict[str, str] = {}

    title = _field(form, "title", "Event title", errors)
    location = _field(form, "location", "Location", errors)
    raw_date = _field(form, "date", "Date", errors)

    if "title" not in errors:
        if not title:
            errors["title"] = "Event title is required"
        elif len(title) < TITLE_MIN_LENGTH:
            errors["title"] = f"Title must be at least {TITLE_MIN_LENGTH} characters"

    if "location" not in errors:
        if not location:
            errors["location"] = "Location is required"
        elif len(location) < LOCATION_MIN_LENGTH:
            errors["location"] = f"Location must be at least {LOCATION_MIN_LENGTH} characters"

    date = parse_dt(raw_date)
    if "date" in errors:
        date = None
    elif not raw_date:
        errors["date"] = "Date is required"
    elif date is None:
        errors["date"] = "Invalid date format. Use ISO-8601."
    else:
        if now is None:
            now = datetime.now(date.tzinfo)
        elif (now.tzinfo is None) != (date.tzinfo is None):
            now = now.astimezone(date.tzinfo) if date.tzinfo else now.astimezone().replace(tzinfo=None)
        if date <= now:
            errors["date"] = "Event date must be in the future"

    if errors:
        raise ValidationError(next(iter(errors.values())), fields=errors)

    return EventDraft(title=title, location=location, date=date)
