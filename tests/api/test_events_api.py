import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _command(client, user_id, name, args=""):
    response = client.post(
        "/api/events/text",
        json={
            "sender_id": user_id,
            "chat_id": user_id,
            "text": f"/{name} {args}".strip(),
            "is_command": True,
            "command_name": name,
            "command_args": args,
        },
    )
    assert response.status_code == 200
    return response.json()["messages"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_vote_flow_over_http(client):
    created = _command(client, 1, "create_room", "Party | pw1")
    assert created[0]["kind"] == "text"
    assert "Room created!" in created[0]["text"]

    _command(client, 1, "add_nomination", "1 | Best Dish")
    _command(client, 1, "add_nominee", "1 | Pizza")
    joined = _command(client, 2, "room", "1 pw1")
    assert "You entered the room: Party (ID 1)" in joined[0]["text"]

    response = client.post(
        "/api/events/button",
        json={"sender_id": 2, "chat_id": 2, "message_ref": "42", "payload": "vote:1"},
    )
    assert response.status_code == 200
    messages = response.json()["messages"]
    assert messages[0]["text"] == "Vote accepted! You voted for: Pizza"
    assert messages[1]["buttons"] == [[{"label": "🗳 Open", "payload": "nomination:1"}]]

    results = _command(client, 1, "results", "1")
    assert "• Pizza (ID 1) - 1 vote(s)" in results[0]["text"]


def test_photo_event_binds_media(client):
    _command(client, 1, "create_room", "Party | pw1")
    _command(client, 1, "add_nomination", "1 | Best Dish")
    _command(client, 1, "add_nominee", "1 | Pizza")
    _command(client, 1, "set_nominee_media", "1")

    response = client.post(
        "/api/events/text",
        json={"sender_id": 1, "chat_id": 1, "photo_refs": ["small", "big"]},
    )
    assert response.json()["messages"][0]["text"] == "Nominee media saved ✅"

    _command(client, 1, "room", "1 pw1")
    opened = client.post(
        "/api/events/button",
        json={"sender_id": 1, "chat_id": 1, "payload": "nomination:1"},
    ).json()["messages"]
    photo = [m for m in opened if m["kind"] == "photo"]
    assert photo[0]["file_ref"] == "big"


def test_invalid_event_is_rejected(client):
    response = client.post("/api/events/button", json={"sender_id": 1})
    assert response.status_code == 422
