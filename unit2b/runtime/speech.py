"""Serialises spoken output and exposes the recording-suppression flag."""

from __future__ import annotations

import asyncio

from unit2b.core.logger import get_logger
from unit2b.services.protocols import SpeechBackend

logger = get_logger("speech")


class SpeechCoordinator:
    """One utterance at a time; capture is suppressed while anything is spoken."""

    def __init__(self, backend: SpeechBackend, *, timeout: float = 30.0) -> None:
        self.backend = backend
        self.timeout = timeout
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def suppressed(self) -> bool:
        """True while an utterance is queued or playing."""
        return self._pending > 0

    async def speak(self, text: str) -> None:
        text = (text or "").strip()
        if not text:
            return
        self._pending += 1
        self._idle.clear()
        try:
            await self.stop_speaking()
            logger.info("Speaking (%d chars)", len(text))
            try:
                await asyncio.wait_for(self.backend.speak(text), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Speech did not complete within %.1fs, stopping playback", self.timeout)
                await self.stop_speaking()
            except Exception as exc:
                logger.warning("Error speaking: %s", exc)
        finally:
            self._pending -= 1
            if self._pending == 0:
                self._idle.set()

    async def stop_speaking(self) -> None:
        try:
            if self.backend.is_speaking():
                await self.backend.stop()
        except Exception as exc:
            logger.warning("Error stopping speech: %s", exc)

    async def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Wait for the suppression flag to clear; ``False`` when ``timeout`` expired first."""
        if self._idle.is_set():
            return True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout or self.timeout)
        except asyncio.TimeoutError:
            return False
        return True
