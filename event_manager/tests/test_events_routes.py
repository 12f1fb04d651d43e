import io

from conftest import make_event, make_user, noise_image
from event_manager.config import ParseConfig
from event_manager.database.parse_client import ParseClient
from event_manager.gateway.server import create_app


def test_health_reports_configuration(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["configured"] is True
    assert response.get_json()["session_loading"] is False
    assert client.get("/").get_json() == {"status": "gateway_ok"}


def test_health_reports_the_client_config(tmp_path, parse_client):
    unused = ParseConfig(session_file=str(tmp_path / "other.json"))
    app = create_app(config=unused, client=parse_client)

    services = app.extensions["event_manager"]
    assert services.config is parse_client.config
    assert app.test_client().get("/health").get_json()["configured"] is True


def test_unconfigured_app_shows_configuration_error(mocker, tmp_path):
    http = mocker.Mock()
    config = ParseConfig(session_file=str(tmp_path / "session.json"))
    app = create_app(client=ParseClient(config, http=http))
    app.config["TESTING"] = True
    test_client = app.test_client()

    for path in ("/events/", "/events/e1"):
        response = test_client.get(path)
        assert response.status_code == 503
        data = response.get_json()
        assert data["status"] == "error"
        assert data["error"]["kind"] == "configuration"

    assert test_client.get("/health").get_json()["missing"] == [
        "PARSE_APPLICATION_ID",
        "PARSE_JAVASCRIPT_KEY",
        "PARSE_SERVER_URL",
    ]
    http.request.assert_not_called()


def test_list_events(client, parse_server, sign_in):
    sign_in("Organizer", "o1", "bob")
    parse_server.on("GET", "classes/Event", {"results": [
        make_event(organizer=make_user("o1", "bob", "Organizer")),
        make_event("e2", title="Hidden Organizer"),
    ]})

    response = client.get("/events/")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ready"
    assert [e["title"] for e in data["events"]] == ["Tech Meetup", "Hidden Organizer"]
    assert data["events"][0]["organizer"]["username"] == "bob"
    assert data["events"][1]["organizer"]["username"] == "Event Organizer"


def test_list_events_requires_sign_in(client):
    response = client.get("/events/")
    assert response.status_code == 403


def test_get_event_detail(client, parse_server, sign_in):
    sign_in()
    parse_server.on("GET", "classes/Event/e1", make_event(attendees=["u1"]))

    response = client.get("/events/e1")

    assert response.status_code == 200
    data = response.get_json()
    assert data["event"]["title"] == "Tech Meetup"
    assert data["is_registered"] is True
    assert data["is_past"] is False
    assert parse_server.calls[0][2]["params"] == {"include": "organizer"}


def test_register_for_event(client, parse_server, sign_in):
    sign_in()
    parse_server.on("GET", "classes/Event/e1", make_event())
    parse_server.on("POST", "functions/registerForEvent", {"result": {"success": True}})

    response = client.post("/events/e1/register")

    assert response.status_code == 200
    data = response.get_json()
    assert data["message"] == "Successfully registered for the event!"
    assert data["redirect"] == "/"


def test_cancel_registration(client, parse_server, sign_in):
    sign_in()
    parse_server.on("GET", "classes/Registration", {"code": 119, "error": "Permission denied"}, status=403)
    parse_server.on("POST", "functions/cancelEventRegistration", {"result": {"success": True}})
    parse_server.on("GET", "classes/Event", {"results": [make_event()]})
    parse_server.on("POST", "functions/listUpcomingEvents", {"result": {"success": True, "upcomingEvents": []}})

    response = client.post("/events/e1/cancel")

    assert response.status_code == 200
    data = response.get_json()
    assert data["message"] == "Registration canceled."
    assert data["upcoming"] == []


def test_create_event_multipart_with_poster(client, parse_server, sign_in):
    sign_in("Organizer", "o1", "bob")
    parse_server.on("GET", "classes/_User", {"results": []})
    parse_server.on("POST", "files/poster.png", {"name": "x_poster.png", "url": "https://files/x_poster.png"})
    parse_server.on("POST", "functions/createEvent", {"result": {"success": True}})

    response = client.post(
        "/events/",
        data={
            "title": "Launch Party",
            "location": "Rooftop",
            "date": "2099-05-01T18:00",
            "poster": (io.BytesIO(noise_image(40, 30)), "poster.png", "image/png"),
        },
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.get_json()["redirect"] == "/events/"
    upload_kwargs = parse_server.calls[1][2]
    assert upload_kwargs["headers"]["Content-Type"] == "image/png"
    assert parse_server.calls[2][2]["json"]["eventPosterImage"]["url"] == "https://files/x_poster.png"


def test_create_event_json_invalid_input(client, parse_server, sign_in):
    sign_in("Organizer", "o1", "bob")

    response = client.post("/events/", json={"title": "New Event"})

    assert response.status_code == 400
    data = response.get_json()
    assert data["error"]["fields"]["location"] == "Location is required"
    assert parse_server.calls == []


def test_create_event_json_numeric_title(client, parse_server, sign_in):
    sign_in("Organizer", "o1", "bob")

    response = client.post("/events/", json={"title": 123, "location": "Main Hall", "date": "2099-01-01T10:00:00Z"})

    assert response.status_code == 400
    assert response.get_json()["error"]["fields"] == {"title": "Event title must be text"}
    assert parse_server.calls == []


def test_create_event_forbidden_for_attendee(client, sign_in):
    sign_in()
    response = client.post("/events/", json={"title": "New Event", "location": "Hall", "date": "2099-01-01T10:00"})
    assert response.status_code == 403


def test_connection_route(client, parse_server):
    parse_server.on("GET", "classes/_User", {"results": []})
    response = client.get("/events/connection")
    assert response.status_code == 200
    assert response.get_json()["message"] == "Connection successful!"
