from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from unit2b.core.config import Settings
from unit2b.core.history import HistoryStore
from unit2b.core.schemas import InstalledApp, LaunchResult, Transcript


APPS = [
    InstalledApp(package_id="com.google.android.youtube", name="YouTube"),
    InstalledApp(package_id="com.google.android.apps.maps", name="Maps"),
    InstalledApp(package_id="com.spotify.music", name="Spotify"),
    InstalledApp(package_id="com.android.settings", name="Settings", is_system=True),
    InstalledApp(package_id="com.whatsapp", name="WhatsApp"),
]


class FakeInventory:
    def __init__(self, apps: Sequence[InstalledApp] = (), result: LaunchResult | None = None) -> None:
        self.apps = list(apps)
        self.result = result or LaunchResult(success=True)
        self.launched: list[str] = []
        self.cleared = 0

    async def list_apps(self) -> Sequence[InstalledApp]:
        return self.apps

    async def launch(self, package_id: str) -> LaunchResult:
        self.launched.append(package_id)
        return self.result

    def clear_cache(self) -> None:
        self.cleared += 1


class FakeLLM:
    def __init__(self, reply: str | Exception | None = "Sure.") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply or ""


class FakeSpeaker:
    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.stops = 0

    async def speak(self, text: str) -> None:
        self.spoken.append(text)

    def is_speaking(self) -> bool:
        return False

    async def stop(self) -> None:
        self.stops += 1


class FakeHandle:
    def __init__(self, audio: bytes) -> None:
        self.audio = audio
        self.stopped = 0

    @property
    def last_activity(self) -> float | None:
        return None

    async def stop(self) -> bytes:
        self.stopped += 1
        return self.audio


class FakeRecorder:
    def __init__(self, audio: bytes = b"\x01" * 4000, *, granted: bool = True) -> None:
        self.audio = audio
        self.granted = granted
        self.permission_requests = 0
        self.configured = 0
        self.handles: list[FakeHandle] = []

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    async def configure(self) -> None:
        self.configured += 1

    async def start(self) -> FakeHandle:
        handle = FakeHandle(self.audio)
        self.handles.append(handle)
        return handle


class FakeTranscriber:
    def __init__(self, transcript: Transcript | None = None, *, ready: bool = True) -> None:
        self.transcript = transcript
        self.is_ready = ready
        self.calls: list[bytes] = []

    async def ready(self) -> bool:
        return self.is_ready

    async def transcribe(self, audio: bytes) -> Transcript | None:
        self.calls.append(audio)
        return self.transcript


@pytest.fixture
def history(tmp_path: Path) -> HistoryStore:
    return HistoryStore(tmp_path / "history.db")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=str(tmp_path / "history.db"),
        apps_inventory_path=str(tmp_path / "apps.json"),
        max_chunk_sec=0.05,
        utterance_timeout_sec=0.02,
        restart_delay_sec=0.01,
        speech_timeout_sec=1.0,
        llm_timeout_sec=1.0,
        deepgram_api_key="test-key",
    )
