"""Speech backend combining Piper synthesis and device playback."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .playback import SpeechPlayback
    from .tts import PiperTTS

LOGGER = logging.getLogger("unit2b.audio")

_Chunk = Optional[tuple[bytes, int, int]]


class PiperSpeaker:
    """``speak`` returns once the last synthesised buffer has been played.

    Each utterance carries its own cancel token: ``stop`` (or a newer
    ``speak``) cancels the current one without touching the next.
    """

    def __init__(self, tts: PiperTTS, playback: SpeechPlayback) -> None:
        self.tts = tts
        self.playback = playback
        self._active: threading.Event | None = None

    def is_speaking(self) -> bool:
        return self._active is not None and not self._active.is_set()

    async def speak(self, text: str) -> None:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[_Chunk | Exception] = asyncio.Queue()
        if self._active is not None:
            self._active.set()
            self.playback.stop()
        cancelled = threading.Event()
        self._active = cancelled

        def producer() -> None:
            try:
                for chunk in self.tts.synthesize_stream(text):
                    if cancelled.is_set():
                        break
                    loop.call_soon_threadsafe(queue.put_nowait, chunk)
            except Exception as exc:  # pragma: no cover
                loop.call_soon_threadsafe(queue.put_nowait, exc)
            finally:
                loop.call_soon_threadsafe(queue.put_nowait, None)

        producer_future = loop.run_in_executor(None, producer)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                if isinstance(item, Exception):
                    raise item
                if cancelled.is_set():
                    continue
                pcm, rate, channels = item
                self.playback.play(pcm, rate, channels)
            if not cancelled.is_set():
                await self.playback.wait_drained()
        finally:
            if self._active is cancelled:
                self._active = None
            with contextlib.suppress(Exception):
                await producer_future

    async def stop(self) -> None:
        if self._active is not None:
            self._active.set()
            self._active = None
        self.playback.stop()
        LOGGER.debug("Playback stopped.")
