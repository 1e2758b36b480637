"""Composition root: one Assistant per process."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from unit2b.core.commands import register_defaults
from unit2b.core.config import Settings, get_settings
from unit2b.core.dispatcher import CommandDispatcher
from unit2b.core.errors import PermissionDeniedError
from unit2b.core.history import HistoryStore
from unit2b.core.llm import LLMClient
from unit2b.core.logger import get_logger
from unit2b.core.registry import CommandRegistry
from unit2b.core.resolver import AppResolver
from unit2b.core.transcripts import TranscriptPolicy
from unit2b.runtime.events import EventBus
from unit2b.runtime.session import RecognitionSessionManager
from unit2b.runtime.speech import SpeechCoordinator
from unit2b.services.inventory import JsonAppInventory
from unit2b.services.protocols import AppInventory, ChatBackend, Recorder, SpeechBackend, Transcriber
from unit2b.services.transcriber import DeepgramTranscriber

logger = get_logger("server")


class LoggedSpeaker:
    """Speech backend used when no voice model is configured: text goes to the log."""

    async def speak(self, text: str) -> None:
        logger.info("Say: %s", text)

    def is_speaking(self) -> bool:
        return False

    async def stop(self) -> None:
        return None


class NoMicrophone:
    """Recorder for headless runs; permission is always refused."""

    async def request_permission(self) -> bool:
        return False

    async def configure(self) -> None:
        return None

    async def start(self):
        raise PermissionDeniedError("No microphone available")


@dataclass
class Assistant:
    settings: Settings
    registry: CommandRegistry
    resolver: AppResolver
    inventory: AppInventory
    history: HistoryStore
    llm: ChatBackend
    events: EventBus
    speech: SpeechCoordinator
    dispatcher: CommandDispatcher
    session: RecognitionSessionManager

    async def dispatch(self, text: str):
        return await self.dispatcher.dispatch(text)

    async def shutdown(self) -> None:
        await self.session.shutdown()


def _device_recorder(settings: Settings) -> Recorder:
    from unit2b.audio.recorder import RecorderConfig, SoundDeviceRecorder

    return SoundDeviceRecorder(
        RecorderConfig(
            sample_rate=settings.audio_sample_rate,
            device_name=settings.audio_input_device,
            activity_level=settings.audio_activity_level,
        )
    )


def _device_speaker(settings: Settings) -> SpeechBackend:
    if not settings.tts_model_path:
        logger.info("No TTS model configured, speech goes to the log")
        return LoggedSpeaker()
    from unit2b.audio.playback import PlaybackConfig, SpeechPlayback
    from unit2b.audio.speaker import PiperSpeaker
    from unit2b.audio.tts import PiperConfig, PiperTTS

    tts = PiperTTS(
        PiperConfig(
            model_path=Path(settings.tts_model_path),
            config_path=Path(settings.tts_config_path) if settings.tts_config_path else None,
            length_scale=settings.tts_length_scale,
            noise_scale=settings.tts_noise_scale,
        )
    )
    playback = SpeechPlayback(PlaybackConfig(device_name=settings.audio_output_device))
    return PiperSpeaker(tts, playback)


def build_assistant(settings: Settings | None = None, *, audio: bool = True, **overrides: Any) -> Assistant:
    """Wire the engine. Any collaborator may be replaced through ``overrides``.

    Recognised keys: ``recorder``, ``transcriber``, ``speaker``, ``inventory``,
    ``history``, ``llm``, ``registry``, ``resolver``, ``events``.
    With ``audio=False`` no device module is imported.
    """
    settings = settings or get_settings()

    registry = overrides.get("registry")
    if registry is None:
        registry = register_defaults(
            CommandRegistry(overlap_threshold=settings.word_overlap_threshold),
            settings.assistant_name,
        )
    resolver = overrides.get("resolver")
    if resolver is None:
        resolver = AppResolver(
            settings.app_aliases,
            fuzzy_threshold=settings.fuzzy_threshold,
            camera_threshold=settings.camera_fuzzy_threshold,
            suggestion_limit=settings.suggestion_limit,
        )
    inventory = overrides.get("inventory")
    if inventory is None:
        inventory = JsonAppInventory(
            settings.apps_inventory_path,
            launch_command=settings.app_launch_command,
            launch_timeout=settings.app_launch_timeout_sec,
        )
    history = overrides.get("history")
    if history is None:
        history = HistoryStore(
            settings.db_path,
            dedup_window=settings.history_dedup_window_sec,
            short_max_len=settings.history_short_max_len,
        )
    llm = overrides.get("llm") or LLMClient(settings)
    events = overrides.get("events") or EventBus()

    speaker = overrides.get("speaker")
    if speaker is None:
        speaker = _device_speaker(settings) if audio else LoggedSpeaker()
    speech = SpeechCoordinator(speaker, timeout=settings.speech_timeout_sec)

    dispatcher = CommandDispatcher(
        registry,
        resolver,
        inventory,
        history,
        llm,
        speak=speech.speak,
        status=events.status,
        wake_word=settings.wake_word,
        assistant_name=settings.assistant_name,
        llm_timeout=settings.llm_timeout_sec,
    )

    recorder = overrides.get("recorder")
    if recorder is None:
        recorder = _device_recorder(settings) if audio else NoMicrophone()
    transcriber: Transcriber = overrides.get("transcriber") or DeepgramTranscriber(settings)
    session = RecognitionSessionManager(
        recorder,
        transcriber,
        dispatcher,
        speech,
        events,
        policy=TranscriptPolicy(settings.stt_min_confidence, settings.stt_min_words),
        min_audio_bytes=settings.min_audio_bytes,
        utterance_timeout=settings.utterance_timeout_sec,
        max_chunk=settings.max_chunk_sec,
        restart_delay=settings.restart_delay_sec,
    )
    logger.info("Assistant %s ready (%d commands)", settings.assistant_name, len(registry))
    return Assistant(
        settings=settings,
        registry=registry,
        resolver=resolver,
        inventory=inventory,
        history=history,
        llm=llm,
        events=events,
        speech=speech,
        dispatcher=dispatcher,
        session=session,
    )
