"""Speech playback with a completion signal."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass

import sounddevice as sd

LOGGER = logging.getLogger("unit2b.audio")


@dataclass(slots=True)
class PlaybackConfig:
    """Playback configuration."""

    sample_rate: int = 22_050
    channels: int = 1
    device_name: str | None = None


class SpeechPlayback:
    """Queue PCM buffers and resolve a future once the queue has drained."""

    def __init__(self, config: PlaybackConfig | None = None) -> None:
        self.config = config or PlaybackConfig()
        self._buffer = deque[bytes]()
        self._lock = threading.RLock()
        self._stream: sd.RawOutputStream | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._drained: asyncio.Future[None] | None = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def active(self) -> bool:
        with self._lock:
            return bool(self._buffer) or (self._drained is not None and not self._drained.done())

    def play(self, pcm_data: bytes, sample_rate: int, channels: int = 1) -> None:
        """Queue a PCM buffer for playback. Must be called from the event loop."""
        if not pcm_data:
            return
        if sample_rate != self.config.sample_rate or channels != self.config.channels:
            self._close_stream()
            self.config.sample_rate = sample_rate
            self.config.channels = channels
        with self._lock:
            if self._drained is None or self._drained.done():
                self._loop = asyncio.get_running_loop()
                self._drained = self._loop.create_future()
            self._buffer.append(pcm_data)
            self._ensure_stream()

    async def wait_drained(self) -> None:
        """Return once every queued buffer has been written to the device."""
        future = self._drained
        if future is not None:
            await asyncio.shield(future)

    def stop(self) -> None:
        """Stop playback, clear the buffer and release any waiter."""
        with self._lock:
            self._buffer.clear()
        self._close_stream()
        self._resolve()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _ensure_stream(self) -> None:
        if self._stream is not None:
            if not self._stream.active:
                self._stream.start()
            return
        self._stream = sd.RawOutputStream(
            samplerate=self.config.sample_rate,
            channels=self.config.channels,
            dtype="int16",
            callback=self._on_write,
            device=self.config.device_name,
        )
        self._stream.start()

    def _close_stream(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()

    def _resolve(self) -> None:
        with self._lock:
            future, loop = self._drained, self._loop
        if future is None or loop is None or future.done():
            return

        def _finish() -> None:
            if not future.done():
                future.set_result(None)

        loop.call_soon_threadsafe(_finish)

    def _on_write(self, outdata: bytearray, frames: int, time, status) -> None:  # noqa: ANN001
        if status:  # pragma: no cover
            LOGGER.warning("Playback status: %s", status)
        with self._lock:
            if not self._buffer:
                outdata[:] = b"\x00" * len(outdata)
                drained = True
            else:
                drained = False
                chunk = self._buffer.popleft()
                if len(chunk) >= len(outdata):
                    outdata[:] = chunk[: len(outdata)]
                    remainder = chunk[len(outdata) :]
                    if remainder:
                        self._buffer.appendleft(remainder)
                else:
                    outdata[: len(chunk)] = chunk
                    outdata[len(chunk) :] = b"\x00" * (len(outdata) - len(chunk))
        if drained:
            self._resolve()
