from __future__ import annotations

import asyncio

import pytest

from unit2b.core.commands import register_defaults
from unit2b.core.config import DEFAULT_APP_ALIASES
from unit2b.core.dispatcher import CommandDispatcher
from unit2b.core.history import HistoryStore
from unit2b.core.registry import CommandRegistry
from unit2b.core.resolver import AppResolver
from unit2b.core.schemas import HistoryType, LaunchFailure, LaunchResult

from conftest import APPS, FakeInventory, FakeLLM


class Harness:
    def __init__(self, history: HistoryStore, *, llm: FakeLLM | None = None, inventory: FakeInventory | None = None):
        self.spoken: list[str] = []
        self.statuses: list[str] = []
        self.history = history
        self.llm = llm or FakeLLM()
        self.inventory = inventory or FakeInventory(APPS)
        self.dispatcher = CommandDispatcher(
            register_defaults(CommandRegistry()),
            AppResolver(DEFAULT_APP_ALIASES),
            self.inventory,
            history,
            self.llm,
            speak=self._speak,
            status=self.statuses.append,
            llm_timeout=0.2,
        )

    async def _speak(self, text: str) -> None:
        self.spoken.append(text)


@pytest.mark.asyncio
async def test_registry_command_executes_and_records(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("What's the status?")
    assert result.success
    assert result.message == "Command executed: status"
    assert h.spoken == ["All systems operational. Unit 2B ready for commands."]
    entries = await history.read()
    assert [entry.command for entry in entries] == ["status"]
    assert h.llm.prompts == []


@pytest.mark.asyncio
async def test_wake_word_goes_to_llm_before_registry(history: HistoryStore) -> None:
    h = Harness(history, llm=FakeLLM("It is evening in Tokyo."))
    result = await h.dispatcher.dispatch("2b what time is it in tokyo")
    assert result.success
    assert len(h.llm.prompts) == 1
    assert 'User asked: "what time is it in tokyo"' in h.llm.prompts[0]
    assert h.spoken == ["It is evening in Tokyo."]
    entries = await history.read()
    assert len(entries) == 1
    assert entries[0].type is HistoryType.LLM
    assert entries[0].question == "what time is it in tokyo"


@pytest.mark.asyncio
async def test_wake_word_without_question(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("2B")
    assert not result.success
    assert result.message == 'Please provide a question after "2b".'
    assert h.llm.prompts == []
    assert await history.read() == []


@pytest.mark.asyncio
async def test_wake_word_llm_failure_is_a_result(history: HistoryStore) -> None:
    h = Harness(history, llm=FakeLLM(RuntimeError("boom")))
    result = await h.dispatcher.dispatch("2b tell me a joke")
    assert not result.success
    assert result.message == "Unable to get a response from the assistant."
    assert h.spoken == ["Unable to get a response from the assistant."]


@pytest.mark.asyncio
async def test_explicit_launch(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("open spotify")
    assert result.success
    assert result.message == "Launched Spotify"
    assert h.inventory.launched == ["com.spotify.music"]
    assert h.spoken == ["Opening Spotify"]
    assert [entry.command for entry in await history.read()] == ["open Spotify"]


@pytest.mark.asyncio
async def test_explicit_launch_miss_speaks_suggestions(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("launch spotty tunes")
    assert not result.success
    assert result.message == 'Application "spotty tunes" not found. Did you mean: Spotify?'
    assert h.spoken == [result.message]
    assert h.inventory.launched == []


@pytest.mark.asyncio
async def test_launch_failure_reports_reason_once(history: HistoryStore) -> None:
    inventory = FakeInventory(APPS, LaunchResult.failed(LaunchFailure.SECURITY))
    h = Harness(history, inventory=inventory)
    result = await h.dispatcher.dispatch("start whatsapp")
    assert not result.success
    assert "protected by the system" in result.message
    assert h.spoken == ["Opening WhatsApp"]
    assert await history.read() == []


@pytest.mark.asyncio
async def test_open_settings_never_picks_settings_for_maps(history: HistoryStore) -> None:
    h = Harness(history)
    await h.dispatcher.dispatch("open maps")
    await h.dispatcher.dispatch("open settings")
    assert h.inventory.launched == ["com.google.android.apps.maps", "com.android.settings"]


@pytest.mark.asyncio
async def test_bare_alias_opens_app(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("YouTube")
    assert result.success
    assert h.inventory.launched == ["com.google.android.youtube"]
    assert h.llm.prompts == []


@pytest.mark.asyncio
async def test_camera_command_records_single_entry(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("camera please")
    assert result.success
    assert h.inventory.launched == ["com.android.camera"]
    assert [entry.command for entry in await history.read()] == ["open camera"]


@pytest.mark.asyncio
async def test_camera_command_failed_launch_is_not_recorded(history: HistoryStore) -> None:
    inventory = FakeInventory(APPS, LaunchResult.failed(LaunchFailure.NOT_FOUND, "Unknown package"))
    h = Harness(history, inventory=inventory)
    result = await h.dispatcher.dispatch("camera please")
    assert not result.success
    assert result.message.startswith("Failed to launch")
    assert h.inventory.launched == ["com.android.camera"]
    assert await history.read() == []


@pytest.mark.asyncio
async def test_fallback_open_app_directive(history: HistoryStore) -> None:
    h = Harness(history, llm=FakeLLM("OPEN_APP: Spotify"))
    result = await h.dispatcher.dispatch("put on some tunes for me")
    assert result.success
    assert h.inventory.launched == ["com.spotify.music"]
    assert 'User said: "put on some tunes for me"' in h.llm.prompts[0]


@pytest.mark.asyncio
async def test_fallback_free_text_is_spoken_and_recorded(history: HistoryStore) -> None:
    h = Harness(history, llm=FakeLLM("Water boils at 100 degrees."))
    result = await h.dispatcher.dispatch("when does water boil")
    assert result.success
    assert h.spoken == ["Water boils at 100 degrees."]
    entries = await history.read(entry_type=HistoryType.LLM)
    assert entries[0].response == "Water boils at 100 degrees."


@pytest.mark.asyncio
async def test_fallback_without_llm_is_not_recognized(history: HistoryStore) -> None:
    h = Harness(history, llm=FakeLLM(RuntimeError("offline")))
    result = await h.dispatcher.dispatch("when does water boil")
    assert not result.success
    assert result.message == "Command not recognized"
    assert h.spoken == []


@pytest.mark.asyncio
async def test_slow_llm_is_bounded(history: HistoryStore) -> None:
    class SlowLLM(FakeLLM):
        async def complete(self, prompt: str, *, system: str | None = None) -> str:
            await asyncio.sleep(5)
            return "late"

    h = Harness(history, llm=SlowLLM())
    result = await h.dispatcher.dispatch("when does water boil")
    assert not result.success


@pytest.mark.asyncio
async def test_collaborator_errors_never_escape(history: HistoryStore) -> None:
    class BrokenInventory(FakeInventory):
        async def list_apps(self):
            raise OSError("adb missing")

        async def launch(self, package_id: str):
            raise OSError("adb missing")

    h = Harness(history, inventory=BrokenInventory())
    result = await h.dispatcher.dispatch("open spotify")
    assert not result.success
    result = await h.dispatcher.dispatch("open youtube")
    assert not result.success
    assert result.message.startswith("Failed to launch youtube")


@pytest.mark.asyncio
async def test_empty_transcript(history: HistoryStore) -> None:
    h = Harness(history)
    result = await h.dispatcher.dispatch("  ?! ")
    assert not result.success
    assert result.message == "No command detected."
