"""
Page controllers for the event screens.

Each controller wires the session, the Parse client and the mappers for one
page, and reports its outcome as a PageState snapshot. Remote failures stop
here: they become an inline error on the page, never an exception escaping
to the view.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

from event_manager.auth_service.session import SessionStore
from event_manager.database.parse_client import USER_CLASS, ParseClient, expect_success, pointer
from event_manager.errors import (
    AccessDenied,
    ActionInProgress,
    EventManagerError,
    RemoteCallError,
    ValidationError,
)
from event_manager.events_service.images import ImageFile, prepare_image, upload_image, validate_image
from event_manager.events_service.mappers import map_event, map_upcoming_registration
from event_manager.events_service.validation import validate_event_form
from event_manager.models import ATTENDEE, ORGANIZER, STATUS_CANCELED, STATUS_REGISTERED

LIST_URL = "/events/"
HOME_URL = "/"


class PageState:
    """
    idle -> loading -> {ready, error}; error -> loading on retry and
    ready -> loading when a mutation completes and the page re-fetches.
    """

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"

    TRANSITIONS = {
        IDLE: {LOADING},
        LOADING: {READY, ERROR},
        READY: {LOADING},
        ERROR: {LOADING},
    }

    def __init__(self):
        self.status = self.IDLE
        self.data: Dict[str, Any] = {}
        self.error: Optional[EventManagerError] = None
        self.message: Optional[str] = None

    def _move(self, status: str) -> None:
        if status not in self.TRANSITIONS[self.status]:
            raise RuntimeError(f"Illegal page transition {self.status} -> {status}")
        self.status = status

    def begin(self) -> None:
        self._move(self.LOADING)
        self.error = None

    def succeed(self, **data: Any) -> None:
        self._move(self.READY)
        self.data.update(data)

    def fail(self, error: EventManagerError) -> None:
        self._move(self.ERROR)
        self.error = error

    def report(self, error: EventManagerError) -> None:
        """Show an action failure inline without leaving the current status."""
        self.error = error

    @property
    def status_code(self) -> int:
        if self.status == self.ERROR and self.error is not None:
            return self.error.status_code
        return 200

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "error": self.error.to_dict() if self.error else None,
            "message": self.message,
            **self.data,
        }


class ActionGuard:
    """
    Busy flags for in-flight actions, shared across requests.
    """

    def __init__(self):
        self._busy = set()
        self._lock = threading.Lock()

    def is_busy(self, *key: Any) -> bool:
        with self._lock:
            return key in self._busy

    @contextmanager
    def hold(self, *key: Any) -> Iterator[None]:
        with self._lock:
            if key in self._busy:
                raise ActionInProgress("This action is already in progress. Please wait.")
            self._busy.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(key)


# --- EVENT LIST / HOME PAGE ---
class EventListController:
    """
    Home page: all events, plus the attendee's upcoming registrations.
    """

    def __init__(self, client: ParseClient, session: SessionStore, guard: ActionGuard):
        self.client = client
        self.session = session
        self.guard = guard
        self.state = PageState()

    def load(self) -> PageState:
        self.state.begin()
        try:
            self.client.config.require()
            identity = self.session.identity
            if identity is None:
                raise AccessDenied("Please sign in to browse events.")

            results = self.client.find("Event", include=["organizer"], order="-createdAt")
            events = [map_event(raw).to_dict() for raw in results]
            upcoming = self._load_upcoming() if identity.role == ATTENDEE else []
        except EventManagerError as e:
            logging.error(f"[Events] Load events error: {e}")
            self.state.fail(e)
        else:
            self.state.succeed(events=events, upcoming=upcoming)
        return self.state

    def retry(self) -> PageState:
        return self.load()

    def _load_upcoming(self):
        # A failure here leaves the section empty; the event list still shows
        try:
            result = self.client.run("listUpcomingEvents")
        except RemoteCallError as e:
            logging.error(f"[Events] Load upcoming registrations error: {e}")
            return []
        if not isinstance(result, Mapping) or not result.get("success"):
            return []
        return [map_upcoming_registration(raw).to_dict() for raw in result.get("upcomingEvents") or []]

    def cancel_registration(self, event_id: str) -> PageState:
        """
        Cancel the current attendee's registration, then re-fetch the page.

        The Registration record is updated directly first; if that fails
        (e.g. the ACL forbids it) the `cancelEventRegistration` cloud function
        is used instead.
        """
        try:
            self.client.config.require()
            identity = self.session.require_role(ATTENDEE, "Only attendees can cancel registrations.")
            with self.guard.hold("cancel", identity.object_id, event_id):
                try:
                    self._cancel_directly(identity.object_id, event_id)
                except RemoteCallError as e:
                    logging.warning(
                        f"[Events] Direct cancel of {event_id} failed ({e}), using cloud function"
                    )
                    result = self.client.run("cancelEventRegistration", {"eventId": event_id})
                    expect_success(result, "Failed to cancel registration")
        except EventManagerError as e:
            logging.error(f"[Events] Cancel registration error: {e}")
            self.load()
            self.state.report(e)
            return self.state

        self.load()
        if self.state.status == PageState.READY:
            self.state.message = "Registration canceled."
        return self.state

    def _cancel_directly(self, attendee_id: str, event_id: str) -> None:
        matches = self.client.find(
            "Registration",
            where={
                "event": pointer("Event", event_id),
                "attendee": pointer(USER_CLASS, attendee_id),
                "status": STATUS_REGISTERED,
            },
            limit=1,
        )
        if not matches:
            raise RemoteCallError("No active registration found for this event")

        self.client.save(
            "Registration",
            {"status": STATUS_CANCELED, "registered": False},
            object_id=matches[0]["objectId"],
        )


# --- EVENT REGISTRATION PAGE ---
class RegisterController:
    def __init__(self, client: ParseClient, session: SessionStore, guard: ActionGuard):
        self.client = client
        self.session = session
        self.guard = guard
        self.state = PageState()

    def _fetch(self, event_id: str):
        raw = self.client.get("Event", event_id, include=["organizer"])
        return map_event(raw)

    def load(self, event_id: str) -> PageState:
        """
        Show one event with its registration options.
        """
        self.state.begin()
        try:
            self.client.config.require()
            identity = self.session.require_role(ATTENDEE, "Only attendees can register for events.")
            event = self._fetch(event_id)
        except RemoteCallError as e:
            logging.error(f"[Events] Load event {event_id} error: {e}")
            if e.not_found:
                e = RemoteCallError("Event not found", code=e.code, status=404)
            self.state.fail(e)
        except EventManagerError as e:
            logging.error(f"[Events] Load event {event_id} error: {e}")
            self.state.fail(e)
        else:
            self.state.succeed(
                event=event.to_dict(),
                is_past=event.is_past(),
                is_registered=identity.object_id in event.attendees,
                registering=self.guard.is_busy("register", identity.object_id, event_id),
            )
        return self.state

    def register(self, event_id: str) -> PageState:
        """
        Register the current attendee via `registerForEvent`, then re-fetch.
        """
        try:
            self.client.config.require()
            identity = self.session.require_role(ATTENDEE, "Only attendees can register for events.")
            with self.guard.hold("register", identity.object_id, event_id):
                event = self._fetch(event_id)
                if event.is_past():
                    raise ValidationError(
                        "This event has already passed. Registration is no longer available."
                    )
                result = self.client.run(
                    "registerForEvent",
                    {"attendeeId": identity.object_id, "eventId": event.object_id},
                )
                expect_success(result, "Registration failed")
        except EventManagerError as e:
            logging.error(f"[Events] Registration error: {e}")
            self.load(event_id)
            self.state.report(e)
            return self.state

        self.load(event_id)
        if self.state.status == PageState.READY:
            self.state.message = "Successfully registered for the event!"
            self.state.data["redirect"] = HOME_URL
        return self.state


# --- CREATE EVENT PAGE ---
class CreateEventController:
    def __init__(self, client: ParseClient, session: SessionStore, guard: ActionGuard):
        self.client = client
        self.session = session
        self.guard = guard
        self.state = PageState()

    def test_connection(self) -> PageState:
        """
        Check that the Parse Server answers with the configured credentials.
        """
        self.state.begin()
        try:
            self.client.ping()
        except EventManagerError as e:
            logging.error(f"[Events] Connection test failed: {e}")
            self.state.fail(e)
            self.state.message = f"Connection failed: {e.message}"
        else:
            self.state.succeed()
            self.state.message = "Connection successful!"
        return self.state

    def submit(self, form: Mapping[str, Any], poster: Optional[ImageFile] = None) -> PageState:
        """
        Validate and create an event, uploading the poster first if given.

        On success the page redirects to the event listing.
        """
        self.state.begin()
        try:
            identity = self.session.require_role(ORGANIZER, "Only organizers can create events.")
            draft = validate_event_form(form)
            if poster is not None:
                validate_image(poster)
            self.client.config.require()

            with self.guard.hold("create", identity.object_id):
                try:
                    self.client.ping()
                except RemoteCallError as e:
                    raise RemoteCallError(
                        "Unable to connect to Parse Server. Please check your configuration."
                    ) from e

                params = {
                    "title": draft.title,
                    "location": draft.location,
                    "date": draft.date_iso(),
                    "organizerId": identity.object_id,
                }
                if poster is not None:
                    prepared = prepare_image(poster)
                    stored = upload_image(self.client, prepared.file, self.client.config.upload_timeout)
                    params["eventPosterImage"] = {"__type": "File", **stored}

                result = self.client.run("createEvent", params)
                expect_success(result, "Failed to create event")
        except EventManagerError as e:
            logging.error(f"[Events] Event creation error: {e}")
            self.state.fail(e)
            return self.state

        logging.info(f"[Events] {identity.username} created event '{draft.title}'")
        self.state.succeed(redirect=LIST_URL)
        return self.state

