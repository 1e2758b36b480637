from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from unit2b import cli as cli_module
from unit2b.core.config import Settings
from unit2b.runtime.assistant import build_assistant

from conftest import APPS, FakeInventory, FakeLLM, FakeSpeaker

runner = CliRunner()


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, settings: Settings) -> FakeInventory:
    inventory = FakeInventory(APPS)

    def fake_build(_settings=None, **kwargs):
        kwargs.pop("audio", None)
        kwargs.setdefault("inventory", inventory)
        kwargs.setdefault("llm", FakeLLM("Sure."))
        kwargs.setdefault("speaker", FakeSpeaker())
        return build_assistant(settings, audio=False, **kwargs)

    monkeypatch.setattr(cli_module, "build_assistant", fake_build)
    return inventory


def test_cli_help() -> None:
    result = runner.invoke(cli_module.cli, ["--help"])
    assert result.exit_code == 0
    for name in ("serve", "listen", "say", "commands", "apps", "history"):
        assert name in result.output


def test_say_dispatches_and_prints_result(wired: FakeInventory) -> None:
    result = runner.invoke(cli_module.cli, ["say", "open maps", "--quiet"])
    assert result.exit_code == 0
    assert "[status] Opening Maps" in result.output
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload == {"success": True, "message": "Launched Maps"}
    assert wired.launched == ["com.google.android.apps.maps"]


def test_say_failure_exit_code(wired: FakeInventory) -> None:
    result = runner.invoke(cli_module.cli, ["say", "open zzzz", "--quiet"])
    assert result.exit_code == 1


def test_commands_and_apps(wired: FakeInventory) -> None:
    result = runner.invoke(cli_module.cli, ["commands"])
    assert result.exit_code == 0
    assert "what time is it" in result.output

    result = runner.invoke(cli_module.cli, ["apps", "list", "--q", "whats"])
    assert result.output.strip() == "WhatsApp\tcom.whatsapp"

    result = runner.invoke(cli_module.cli, ["apps", "resolve", "spotfy"])
    assert result.exit_code == 0
    assert json.loads(result.output)["app"]["package_id"] == "com.spotify.music"


def test_history_list_and_clear(wired: FakeInventory) -> None:
    runner.invoke(cli_module.cli, ["say", "open spotify", "--quiet"])
    result = runner.invoke(cli_module.cli, ["history", "list", "--type", "command"])
    assert result.exit_code == 0
    items = json.loads(result.output)["items"]
    assert items[0]["command"] == "open Spotify"

    result = runner.invoke(cli_module.cli, ["history", "clear"])
    assert result.output.strip() == "History cleared"
    result = runner.invoke(cli_module.cli, ["history", "list"])
    assert json.loads(result.output)["items"] == []
