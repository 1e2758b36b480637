"""Installed-application inventory backed by a JSON file and a launch command."""

from __future__ import annotations

import asyncio
import json
import shlex
from pathlib import Path
from typing import Any, Sequence

from unit2b.core.logger import get_logger
from unit2b.core.schemas import InstalledApp, LaunchFailure, LaunchResult

logger = get_logger("dispatch")

SYSTEM_PACKAGE_PREFIXES = (
    "android.",
    "com.android.settings",
    "com.android.systemui",
    "com.android.providers.",
    "com.android.server.",
)


def is_system_package(package_id: str) -> bool:
    return package_id.startswith(SYSTEM_PACKAGE_PREFIXES)


def classify_launch_error(output: str) -> LaunchFailure:
    """Map launcher output to a typed failure reason."""
    lowered = output.lower()
    if "securityexception" in lowered or "permission denial" in lowered or "security_error" in lowered:
        return LaunchFailure.SECURITY
    if "no activities found" in lowered or "no_launcher" in lowered:
        return LaunchFailure.NO_LAUNCHER
    if "not found" in lowered or "unknown package" in lowered or "app_not_found" in lowered:
        return LaunchFailure.NOT_FOUND
    return LaunchFailure.OTHER


class JsonAppInventory:
    """Inventory read once from disk and cached for the process lifetime."""

    def __init__(
        self,
        path: str | Path,
        *,
        launch_command: str,
        launch_timeout: float = 10.0,
    ) -> None:
        self.path = Path(path)
        self.launch_command = launch_command
        self.launch_timeout = launch_timeout
        self._cache: list[InstalledApp] = []

    async def list_apps(self) -> Sequence[InstalledApp]:
        if self._cache:
            return self._cache
        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, self._read)
        except (OSError, ValueError) as exc:
            logger.warning("Unable to read app inventory %s: %s", self.path, exc)
            return []
        apps = [self._build_app(item) for item in raw if isinstance(item, dict)]
        apps.sort(key=lambda app: (app.is_system, app.name.lower()))
        self._cache = apps
        return self._cache

    def clear_cache(self) -> None:
        self._cache = []

    async def launch(self, package_id: str) -> LaunchResult:
        args = [part.replace("{package}", package_id) for part in shlex.split(self.launch_command)]
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            logger.warning("Launcher unavailable for %s: %s", package_id, exc)
            return LaunchResult.failed(LaunchFailure.OTHER, f"Launcher unavailable: {exc}")
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.launch_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Launcher timed out for %s", package_id)
            return LaunchResult.failed(LaunchFailure.OTHER, "Launcher timed out.")
        output = (stdout or b"").decode("utf-8", errors="replace")
        lowered = output.lower()
        if proc.returncode == 0 and "error" not in lowered and "exception" not in lowered and "no activities" not in lowered:
            logger.info("Launched %s", package_id)
            return LaunchResult(success=True)
        reason = classify_launch_error(output)
        logger.warning("Launch of %s failed (%s): %s", package_id, reason.value, output.strip()[:200])
        return LaunchResult.failed(reason)

    def _read(self) -> list[Any]:
        if not self.path.is_file():
            return []
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("apps", [])
        return list(data)

    @staticmethod
    def _build_app(item: dict[str, Any]) -> InstalledApp:
        app = InstalledApp.from_payload(item)
        if not app.is_system and is_system_package(app.package_id):
            app = InstalledApp(
                package_id=app.package_id,
                name=app.name,
                version=app.version,
                icon=app.icon,
                is_system=True,
            )
        return app
