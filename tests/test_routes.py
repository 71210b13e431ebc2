"""Tests for the FastAPI surface in rpg_adventure.routes."""

import json

import pytest
from fastapi.testclient import TestClient

from rpg_adventure.app import create_app
from rpg_adventure.llm import LLMError
from rpg_adventure.models import Done, TextChunk, ToolCall

STORY = "You step through.\n1. Run\n2. Hide\n3. Listen"


@pytest.fixture
def make_client(tmp_path, stub_client):
    def make(chunks=None, error=None) -> TestClient:
        app = create_app(
            data_dir=tmp_path / "data",
            client_factory=lambda: stub_client(chunks, error=error),
        )
        return TestClient(app)

    return make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client([
        ToolCall(name="set_time", arguments={"time": "Night"}),
        TextChunk(content=STORY),
        Done(),
    ])


def _events(resp) -> list[dict]:
    return [json.loads(line) for line in resp.text.splitlines() if line]


class TestSettings:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_get_settings(self, client: TestClient) -> None:
        assert client.get("/api/settings").json()["ollama_address"] == "localhost:11434"

    def test_patch_settings(self, client: TestClient) -> None:
        resp = client.patch("/api/settings", json={"ollama_address": "192.168.0.100:11434"})
        assert resp.json()["ollama_address"] == "192.168.0.100:11434"
        assert client.get("/api/settings").json()["ollama_address"] == "192.168.0.100:11434"


class TestSessions:
    def test_start_returns_intro_turn(self, client: TestClient) -> None:
        body = client.post("/api/sessions").json()
        assert body["session_id"]
        assert body["turn"]["turn_number"] == 0
        assert len(body["turn"]["choices"]) == 3

    def test_list_sessions(self, client: TestClient) -> None:
        sid = client.post("/api/sessions").json()["session_id"]
        assert client.get("/api/sessions").json()[0]["session_id"] == sid

    def test_get_turn(self, client: TestClient) -> None:
        sid = client.post("/api/sessions").json()["session_id"]
        turn = client.get(f"/api/sessions/{sid}/turns/0").json()
        assert turn["game_state"]["location"] == "Mysterious Room"

    def test_unknown_session_404(self, client: TestClient) -> None:
        assert client.get("/api/sessions/missing/turns/0").status_code == 404
        resp = client.post("/api/sessions/missing/actions", json={"action": "go"})
        assert resp.status_code == 404

    def test_unknown_turn_404(self, client: TestClient) -> None:
        sid = client.post("/api/sessions").json()["session_id"]
        assert client.get(f"/api/sessions/{sid}/turns/9").status_code == 404


class TestSubmitAction:
    def test_streams_ndjson_events(self, client: TestClient) -> None:
        sid = client.post("/api/sessions").json()["session_id"]
        resp = client.post(f"/api/sessions/{sid}/actions", json={"action": "Open the plain wooden door"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/x-ndjson")

        events = _events(resp)
        assert [e["type"] for e in events] == ["tool_call", "tool_result", "text_chunk", "turn_complete"]
        assert events[1]["result"]["time"] == "Night"
        assert events[-1]["choices"] == ["Run", "Hide", "Listen"]
        assert events[-1]["turn_number"] == 1

    def test_completed_turn_is_readable(self, client: TestClient) -> None:
        sid = client.post("/api/sessions").json()["session_id"]
        client.post(f"/api/sessions/{sid}/actions", json={"action": "go"})
        turn = client.get(f"/api/sessions/{sid}/turns/1").json()
        assert turn["story_text"] == STORY
        assert turn["game_state"]["time"] == "Night"

    def test_unreachable_server_is_502(self, make_client) -> None:
        client = make_client(error=LLMError("Cannot connect to Ollama at http://localhost:11434"))
        sid = client.post("/api/sessions").json()["session_id"]
        resp = client.post(f"/api/sessions/{sid}/actions", json={"action": "go"})
        assert resp.status_code == 502
        assert "Cannot connect" in resp.json()["detail"]
        assert client.get(f"/api/sessions/{sid}/turns/1").status_code == 404

    def test_missing_action_rejected(self, client: TestClient) -> None:
        sid = client.post("/api/sessions").json()["session_id"]
        assert client.post(f"/api/sessions/{sid}/actions", json={}).status_code == 422
