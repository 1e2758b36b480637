from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from unit2b.api.deps import get_assistant
from unit2b.core.config import Settings
from unit2b.main import create_app
from unit2b.runtime.assistant import Assistant, build_assistant

from conftest import APPS, FakeInventory, FakeLLM, FakeRecorder, FakeSpeaker, FakeTranscriber


def _assistant(settings: Settings, llm: FakeLLM | None = None) -> Assistant:
    return build_assistant(
        settings,
        audio=False,
        inventory=FakeInventory(APPS),
        llm=llm or FakeLLM("Sure."),
        speaker=FakeSpeaker(),
        recorder=FakeRecorder(),
        transcriber=FakeTranscriber(None),
    )


def _client(assistant: Assistant) -> AsyncClient:
    app = create_app(assistant)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health_reports_db_and_trace_id(settings: Settings) -> None:
    async with _client(_assistant(settings)) as client:
        r = await client.get("/health", headers={"X-Trace-Id": "abc123"})
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["db_ok"] is True
    assert data["assistant"] == "Unit 2B"
    assert r.headers["X-Trace-Id"] == "abc123"


@pytest.mark.asyncio
async def test_dispatch_then_history(settings: Settings) -> None:
    assistant = _assistant(settings)
    async with _client(assistant) as client:
        r = await client.post("/dispatch", json={"text": "open spotify"})
        assert r.status_code == 200
        assert r.json()["success"] is True
        assert r.json()["message"] == "Launched Spotify"
        assert "X-Trace-Id" in r.headers

        r = await client.get("/history", params={"type": "command"})
        items = r.json()["items"]
        assert [item["command"] for item in items] == ["open Spotify"]

        r = await client.delete("/history")
        assert r.json() == {"status": "cleared"}
        r = await client.get("/history")
        assert r.json()["count"] == 0


@pytest.mark.asyncio
async def test_dispatch_rejects_missing_text(settings: Settings) -> None:
    async with _client(_assistant(settings)) as client:
        r = await client.post("/dispatch", json={})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_commands_and_apps(settings: Settings) -> None:
    async with _client(_assistant(settings)) as client:
        r = await client.get("/commands")
        phrases = [item["phrase"] for item in r.json()["items"]]
        assert "what time is it" in phrases and "status" in phrases
        assert r.json()["wake_word"] == "2b"

        r = await client.get("/apps", params={"q": "spot"})
        assert [item["package_id"] for item in r.json()["items"]] == ["com.spotify.music"]

        r = await client.post("/apps/resolve", json={"query": "youtube"})
        body = r.json()
        assert body["found"] is True
        assert body["strategy"] == "alias"

        r = await client.post("/apps/resolve", json={"query": "spotty tunes"})
        body = r.json()
        assert body["found"] is False
        assert body["message"].startswith('Application "spotty tunes" not found.')


@pytest.mark.asyncio
async def test_session_start_stop(settings: Settings) -> None:
    assistant = _assistant(settings)
    async with _client(assistant) as client:
        r = await client.post("/session/start")
        assert r.json()["success"] is True
        assert r.json()["session"]["listening"] is True

        r = await client.get("/session")
        assert r.json()["phase"] in {"listening", "processing"}

        r = await client.post("/session/stop")
        assert r.json()["message"] == "Listening stopped"
        r = await client.post("/session/stop")
        assert r.json()["message"] == "Not listening"
    await assistant.shutdown()


@pytest.mark.asyncio
async def test_dependency_override(settings: Settings) -> None:
    app = create_app()
    app.dependency_overrides[get_assistant] = lambda: _assistant(settings, FakeLLM("Forty two."))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        r = await client.post("/dispatch", json={"text": "2b what is the answer"})
    assert r.json() == {"success": True, "message": "LLM response delivered", "status": "Forty two."}


@pytest.mark.asyncio
async def test_missing_assistant_is_503() -> None:
    async with AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test") as client:
        r = await client.get("/commands")
    assert r.status_code == 503
