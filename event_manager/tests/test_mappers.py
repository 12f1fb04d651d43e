from datetime import datetime, timezone

import pytest

from conftest import make_event, make_user
from event_manager.events_service.mappers import (
    map_event,
    map_identity,
    map_organizer,
    map_registration,
    map_upcoming_registration,
    parse_dt,
)
from event_manager.models import Event


@pytest.mark.parametrize("organizer", [None, {}])
def test_missing_organizer_gets_placeholder(organizer):
    raw = make_event()
    raw["organizer"] = organizer

    event = map_event(raw)

    assert event.organizer is not None
    assert event.organizer.object_id == "unknown"
    assert event.organizer.username == "Event Organizer"
    assert event.organizer.role == "Organizer"
    assert event.organizer.email == ""
    assert event.organizer.created_at is not None


def test_absent_organizer_key_gets_placeholder():
    event = map_event(make_event())
    assert event.organizer.username == "Event Organizer"


def test_populated_organizer_carried_through():
    organizer = make_user("o1", "bob", "Organizer", name="Bob B")
    del organizer["email"]

    mapped = map_organizer(organizer)

    assert mapped.object_id == "o1"
    assert mapped.username == "bob"
    assert mapped.role == "Organizer"
    assert mapped.name == "Bob B"
    assert mapped.email == ""
    assert mapped.created_at == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert mapped.updated_at == datetime(2025, 1, 2, 10, 0, tzinfo=timezone.utc)


def test_pointer_only_organizer_keeps_id():
    mapped = map_organizer({"__type": "Pointer", "className": "_User", "objectId": "o9"})
    assert mapped.object_id == "o9"
    assert mapped.username == "Event Organizer"
    assert mapped.role == "Organizer"


def test_event_fields_and_defaults():
    raw = make_event(
        organizer=make_user("o1", "bob", "Organizer"),
        eventPosterImage={"__type": "File", "name": "poster.jpg", "url": "https://files/poster.jpg"},
    )
    del raw["attendees"]

    event = map_event(raw)

    assert event.object_id == "e1"
    assert event.title == "Tech Meetup"
    assert event.location == "Main Hall"
    assert event.date == datetime(2099, 5, 1, 18, 0, tzinfo=timezone.utc)
    assert event.attendees == []
    assert event.poster.name == "poster.jpg"
    assert event.poster.url == "https://files/poster.jpg"


def test_attendees_accept_ids_and_pointers():
    raw = make_event(attendees=["u1", {"__type": "Pointer", "className": "_User", "objectId": "u2"}, None])
    assert map_event(raw).attendees == ["u1", "u2"]


def test_map_event_is_idempotent():
    first = map_event(make_event())

    assert map_event(first) is first
    assert map_event(first.to_dict()) == first
    assert map_event(map_event(first.to_dict()).to_dict()) == first


def test_dates_are_not_converted():
    assert parse_dt("2025-03-01T09:30:00+02:00").utcoffset().total_seconds() == 7200
    assert parse_dt({"__type": "Date", "iso": "2025-03-01T09:30:00.000Z"}).tzinfo == timezone.utc
    assert parse_dt("2025-03-01T09:30") == datetime(2025, 3, 1, 9, 30)
    assert parse_dt("not a date") is None
    assert parse_dt(None) is None


def test_identity_defaults_to_attendee():
    user = make_user()
    del user["role"]
    assert map_identity(user).role == "Attendee"
    assert map_identity(None) is None
    assert map_identity({"username": "ghost"}) is None


def test_registration_with_redacted_attendee():
    registration = map_registration({
        "objectId": "r1",
        "event": make_event(),
        "attendee": None,
        "registered": True,
        "status": "registered",
    })

    assert registration.attendee.username == "Event Attendee"
    assert registration.attendee.role == "Attendee"
    assert registration.event.organizer.username == "Event Organizer"
    assert registration.status == "registered"


def test_registration_status_follows_flag_when_missing():
    registration = map_registration({"objectId": "r1", "registered": False})
    assert registration.status == "canceled"
    assert isinstance(registration.event, Event)


def test_upcoming_registration():
    upcoming = map_upcoming_registration({
        "registrationId": "r1",
        "registrationDate": "2025-02-01T12:00:00.000Z",
        "event": make_event(organizer=None),
        "status": "registered",
        "registered": True,
    })

    assert upcoming.registration_id == "r1"
    assert upcoming.event.title == "Tech Meetup"
    assert upcoming.event.organizer.object_id == "unknown"
    assert map_upcoming_registration(upcoming.to_dict()) == upcoming
