"""
Events service routes: event listing, creation, registration and
cancellation. Each route hands off to a page controller and returns the
page snapshot as JSON.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from event_manager.events_service.controllers import (
    CreateEventController,
    EventListController,
    PageState,
    RegisterController,
)
from event_manager.events_service.images import ImageFile

events_bp = Blueprint("events", __name__)


def _controller(cls):
    services = current_app.extensions["event_manager"]
    return cls(services.client, services.session, services.guard)


def _render(state: PageState) -> Tuple[Response, int]:
    return jsonify(state.snapshot()), state.status_code


def _poster_from_request() -> Optional[ImageFile]:
    """
    Read the optional `poster` file from a multipart form.
    """
    upload = request.files.get("poster")
    if upload is None or not upload.filename:
        return None
    return ImageFile(
        filename=upload.filename,
        content=upload.read(),
        content_type=upload.mimetype or "application/octet-stream",
    )


# --- REQUEST LOGGING ---
@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


@events_bp.route("/", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Home page data: all events (newest first) and, for attendees, their
    upcoming registrations.

    Returns:
        200: {"status": "ready", "events": [...], "upcoming": [...]}
        403: Not signed in.
        502: Parse Server failure.
        503: Parse configuration missing (no request is sent).
    """
    return _render(_controller(EventListController).load())


@events_bp.route("/", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event (organizers only).

    Accepts multipart form data (title, location, date, optional `poster`
    image file) or a JSON body without a poster.

    Returns:
        200: {"status": "ready", "redirect": "/events/"}
        400: Validation error (form or poster).
        403: Not an organizer.
        502: Parse Server failure.
        503: Parse configuration missing.
        504: Poster upload timed out.
    """
    if request.is_json:
        form: Dict[str, Any] = request.get_json(silent=True) or {}
        poster = None
    else:
        form = request.form.to_dict()
        poster = _poster_from_request()

    return _render(_controller(CreateEventController).submit(form, poster))


@events_bp.route("/connection", methods=["GET"])
def test_connection() -> Tuple[Response, int]:
    """Check that the Parse Server is reachable with the configured keys."""
    return _render(_controller(CreateEventController).test_connection())


@events_bp.route("/<event_id>", methods=["GET"])
def get_event(event_id: str) -> Tuple[Response, int]:
    """
    Registration page data for one event (attendees only).

    Returns:
        200: {"event": {...}, "is_past": bool, "is_registered": bool, ...}
        403: Not an attendee.
        404: Event not found.
    """
    return _render(_controller(RegisterController).load(event_id))


@events_bp.route("/<event_id>/register", methods=["POST"])
def register_for_event(event_id: str) -> Tuple[Response, int]:
    return _render(_controller(RegisterController).register(event_id))


@events_bp.route("/<event_id>/cancel", methods=["POST"])
def cancel_registration(event_id: str) -> Tuple[Response, int]:
    """
    Cancel the current attendee's registration and return the refreshed
    home page data.
    """
    return _render(_controller(EventListController).cancel_registration(event_id))
