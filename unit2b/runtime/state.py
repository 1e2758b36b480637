"""Shared state model for the recognition session."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum

from unit2b.services.protocols import RecordingHandle


class SessionPhase(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    LISTENING = "listening"
    PROCESSING = "processing"


@dataclass(slots=True)
class SessionState:
    """Flags and resource handles owned by the session manager."""

    phase: SessionPhase = SessionPhase.IDLE
    listening: bool = False
    processing_command: bool = False
    preparing_chunk: bool = False
    audio_configured: bool = False
    recording: RecordingHandle | None = None
    utterance_timer: asyncio.Task[None] | None = None
    chunk_timer: asyncio.Task[None] | None = None
    loop_task: asyncio.Task[None] | None = None
    chunks: int = field(default=0)

    def to_payload(self) -> dict[str, object]:
        return {
            "phase": self.phase.value,
            "listening": self.listening,
            "processing": self.processing_command,
            "recording": self.recording is not None,
            "chunks": self.chunks,
        }
