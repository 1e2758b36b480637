"""Microphone capture producing one WAV buffer per chunk."""

from __future__ import annotations

import asyncio
import io
import logging
import wave
from dataclasses import dataclass
from threading import Lock
from time import monotonic

import numpy as np
import sounddevice as sd

from unit2b.core.errors import AudioSetupError, PermissionDeniedError

LOGGER = logging.getLogger("unit2b.audio")


@dataclass(slots=True)
class RecorderConfig:
    """Microphone capture configuration."""

    sample_rate: int = 16_000
    channels: int = 1
    frame_duration_ms: int = 20
    device_name: str | None = None
    activity_level: float = 0.02


def encode_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    """Wrap int16 PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def frame_level(frame: bytes) -> float:
    """Peak level of an int16 frame, between 0 and 1."""
    samples = np.frombuffer(frame, dtype=np.int16)
    if samples.size == 0:
        return 0.0
    peak = int(np.abs(samples.astype(np.int32)).max())
    return min(1.0, peak / 32768.0)


class SoundDeviceRecording:
    """One open input stream; frames accumulate until ``stop``."""

    def __init__(self, config: RecorderConfig) -> None:
        self.config = config
        self._frames: list[bytes] = []
        self._lock = Lock()
        self._last_activity: float | None = None
        self._closed = False
        frame_size = int(config.sample_rate * config.frame_duration_ms / 1000)
        self._stream = sd.RawInputStream(
            samplerate=config.sample_rate,
            channels=config.channels,
            dtype="int16",
            blocksize=frame_size,
            callback=self._on_frame,
            device=config.device_name,
        )
        self._stream.start()
        LOGGER.debug("Recording started.")

    @property
    def last_activity(self) -> float | None:
        return self._last_activity

    async def stop(self) -> bytes:
        """Close the stream and return the captured audio as WAV bytes."""
        await asyncio.to_thread(self._close)
        with self._lock:
            pcm = b"".join(self._frames)
            self._frames.clear()
        if not pcm:
            return b""
        return encode_wav(pcm, self.config.sample_rate, self.config.channels)

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.stop()
        finally:
            self._stream.close()
        LOGGER.debug("Recording stopped.")

    def _on_frame(self, indata: bytes, frames: int, time, status) -> None:  # noqa: ANN001
        if status:  # pragma: no cover
            LOGGER.warning("Microphone status: %s", status)
        frame = bytes(indata)
        level = frame_level(frame)
        with self._lock:
            self._frames.append(frame)
            if level >= self.config.activity_level:
                self._last_activity = monotonic()


class SoundDeviceRecorder:
    """Recorder backed by the default (or configured) input device."""

    def __init__(self, config: RecorderConfig | None = None) -> None:
        self.config = config or RecorderConfig()

    async def request_permission(self) -> bool:
        """The desktop grants access implicitly: an input device must exist."""
        try:
            devices = await asyncio.to_thread(sd.query_devices)
        except sd.PortAudioError as exc:
            raise PermissionDeniedError(f"Audio devices unavailable: {exc}") from exc
        return any(int(device.get("max_input_channels", 0)) > 0 for device in devices)

    async def configure(self) -> None:
        try:
            await asyncio.to_thread(
                sd.check_input_settings,
                device=self.config.device_name,
                channels=self.config.channels,
                dtype="int16",
                samplerate=self.config.sample_rate,
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioSetupError(f"Unsupported input settings: {exc}") from exc

    async def start(self) -> SoundDeviceRecording:
        return await asyncio.to_thread(SoundDeviceRecording, self.config)
