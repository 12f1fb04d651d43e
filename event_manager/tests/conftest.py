import io
import os

import pytest
from PIL import Image

from event_manager.config import ParseConfig
from event_manager.database.parse_client import ParseClient
from event_manager.events_service.mappers import map_identity
from event_manager.gateway.server import create_app

SERVER_URL = "https://parse.example.com/parse"


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class ParseServerStub:
    """
    Stands in for requests.Session.request. Routes are keyed by
    (method, path below the server URL); the last queued response repeats.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, body=None, status=200):
        self.routes.setdefault((method, path), []).append(FakeResponse(status, body))
        return self

    def fail(self, method, path, exc):
        self.routes.setdefault((method, path), []).append(exc)
        return self

    def __call__(self, method, url, **kwargs):
        path = url[len(SERVER_URL) + 1:]
        self.calls.append((method, path, kwargs))
        queued = self.routes.get((method, path))
        if not queued:
            raise AssertionError(f"Unexpected request {method} {path}")
        response = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(response, Exception):
            raise response
        return response

    def requests(self, method=None):
        return [(m, p) for m, p, _ in self.calls if method is None or m == method]


@pytest.fixture
def parse_config(tmp_path):
    return ParseConfig(
        application_id="app-id",
        javascript_key="js-key",
        server_url=SERVER_URL,
        session_file=str(tmp_path / "session.json"),
    )


@pytest.fixture
def parse_server():
    return ParseServerStub()


@pytest.fixture
def http(mocker, parse_server):
    session = mocker.Mock()
    session.request.side_effect = parse_server
    return session


@pytest.fixture
def parse_client(parse_config, http):
    return ParseClient(parse_config, http=http)


@pytest.fixture
def app(parse_client):
    app = create_app(client=parse_client)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["event_manager"]


def make_user(object_id="u1", username="alice", role="Attendee", **extra):
    user = {
        "objectId": object_id,
        "username": username,
        "email": f"{username}@example.com",
        "role": role,
        "createdAt": "2025-01-01T10:00:00.000Z",
        "updatedAt": "2025-01-02T10:00:00.000Z",
    }
    user.update(extra)
    return user


def make_event(object_id="e1", title="Tech Meetup", organizer=None, date="2099-05-01T18:00:00.000Z", **extra):
    event = {
        "objectId": object_id,
        "title": title,
        "location": "Main Hall",
        "date": {"__type": "Date", "iso": date},
        "attendees": [],
        "createdAt": "2025-01-01T10:00:00.000Z",
        "updatedAt": "2025-01-01T10:00:00.000Z",
    }
    if organizer is not None:
        event["organizer"] = organizer
    event.update(extra)
    return event


def noise_image(width, height, fmt="PNG", **save_args):
    """Random pixels compress badly, which keeps the encoded file large."""
    img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **save_args)
    return buffer.getvalue()


@pytest.fixture
def sign_in(services):
    """Put an identity straight into the session store."""
    def _sign_in(role="Attendee", object_id="u1", username="alice"):
        services.session.identity = map_identity(make_user(object_id, username, role))
        return services.session.identity

    return _sign_in
