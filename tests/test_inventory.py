import asyncio
import json
import shlex
import sys
from pathlib import Path

import pytest

from unit2b.core.schemas import LaunchFailure
from unit2b.services.inventory import JsonAppInventory, classify_launch_error, is_system_package


def _write_inventory(path: Path) -> None:
    path.write_text(json.dumps([
        {"packageName": "com.android.settings", "appName": "Settings"},
        {"package_id": "com.spotify.music", "name": "Spotify", "version": "8.9"},
        {"package_id": "com.google.android.apps.maps", "name": "Maps"},
    ]), encoding="utf-8")


def _command(script: str) -> str:
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(script)} {{package}}"


@pytest.mark.asyncio
async def test_list_apps_sorts_user_apps_first_and_caches(tmp_path: Path) -> None:
    path = tmp_path / "apps.json"
    _write_inventory(path)
    inventory = JsonAppInventory(path, launch_command="true")

    apps = await inventory.list_apps()
    assert [app.name for app in apps] == ["Maps", "Spotify", "Settings"]
    assert apps[-1].is_system is True

    path.write_text("[]", encoding="utf-8")
    assert len(await inventory.list_apps()) == 3
    inventory.clear_cache()
    assert await inventory.list_apps() == []


@pytest.mark.asyncio
async def test_missing_or_broken_file_yields_no_apps(tmp_path: Path) -> None:
    assert await JsonAppInventory(tmp_path / "missing.json", launch_command="true").list_apps() == []
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert await JsonAppInventory(broken, launch_command="true").list_apps() == []


@pytest.mark.asyncio
async def test_launch_success_and_failure(tmp_path: Path) -> None:
    ok = JsonAppInventory(tmp_path / "apps.json", launch_command=_command("import sys; print('Events injected: 1')"))
    assert (await ok.launch("com.spotify.music")).success

    denied = JsonAppInventory(
        tmp_path / "apps.json",
        launch_command=_command("import sys; print('java.lang.SecurityException: Permission Denial'); sys.exit(1)"),
    )
    result = await denied.launch("com.android.settings")
    assert not result.success
    assert result.reason is LaunchFailure.SECURITY
    assert result.error


@pytest.mark.asyncio
async def test_launch_with_missing_binary(tmp_path: Path) -> None:
    inventory = JsonAppInventory(tmp_path / "apps.json", launch_command="definitely-not-a-launcher {package}")
    result = await inventory.launch("com.example")
    assert not result.success
    assert result.reason is LaunchFailure.OTHER


@pytest.mark.asyncio
async def test_launch_timeout_kills_and_reaps_process(tmp_path: Path, monkeypatch) -> None:
    spawned = []
    real_exec = asyncio.create_subprocess_exec

    async def tracking_exec(*args, **kwargs):
        proc = await real_exec(*args, **kwargs)
        spawned.append(proc)
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", tracking_exec)
    inventory = JsonAppInventory(
        tmp_path / "apps.json",
        launch_command=_command("import time; time.sleep(30)"),
        launch_timeout=0.2,
    )
    result = await inventory.launch("com.spotify.music")

    assert not result.success
    assert result.error == "Launcher timed out."
    assert spawned and spawned[0].returncode is not None


def test_classify_launch_error() -> None:
    assert classify_launch_error("Error: Activity class does not exist, not found") is LaunchFailure.NOT_FOUND
    assert classify_launch_error("** No activities found to run, monkey aborted.") is LaunchFailure.NO_LAUNCHER
    assert classify_launch_error("Permission Denial: starting Intent") is LaunchFailure.SECURITY
    assert classify_launch_error("segfault") is LaunchFailure.OTHER


def test_is_system_package() -> None:
    assert is_system_package("com.android.systemui")
    assert not is_system_package("com.android.chrome")
