"""Interfaces of the collaborators consumed by the command engine."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from unit2b.core.schemas import InstalledApp, LaunchResult, Transcript


@runtime_checkable
class RecordingHandle(Protocol):
    """One in-flight recording owned by the session manager."""

    @property
    def last_activity(self) -> Optional[float]:
        """Monotonic time of the last non-silent frame, ``None`` before any speech."""
        ...

    async def stop(self) -> bytes:
        """Stop capturing and return the encoded audio."""
        ...


class Recorder(Protocol):
    async def request_permission(self) -> bool: ...

    async def configure(self) -> None: ...

    async def start(self) -> RecordingHandle: ...


class Transcriber(Protocol):
    async def ready(self) -> bool: ...

    async def transcribe(self, audio: bytes) -> Optional[Transcript]: ...


class SpeechBackend(Protocol):
    async def speak(self, text: str) -> None:
        """Play ``text`` and return once playback has completed or was stopped."""
        ...

    def is_speaking(self) -> bool: ...

    async def stop(self) -> None: ...


class AppInventory(Protocol):
    async def list_apps(self) -> Sequence[InstalledApp]: ...

    async def launch(self, package_id: str) -> LaunchResult: ...

    def clear_cache(self) -> None: ...


class ChatBackend(Protocol):
    async def complete(self, prompt: str, *, system: str | None = None) -> str: ...
