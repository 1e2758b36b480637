"""Chunked microphone capture, transcription and dispatch loop."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Callable

from unit2b.core.dispatcher import CommandDispatcher
from unit2b.core.logger import get_logger
from unit2b.core.schemas import CommandResult
from unit2b.core.transcripts import TranscriptPolicy
from unit2b.runtime.events import EventBus
from unit2b.runtime.speech import SpeechCoordinator
from unit2b.runtime.state import SessionPhase, SessionState
from unit2b.services.protocols import Recorder, RecordingHandle, Transcriber

logger = get_logger("session")

NO_COMMAND = "No command detected."


class RecognitionSessionManager:
    """Owns the listening session: Idle, Acquiring, Listening, Processing.

    Once started, the manager keeps capturing chunks until ``stop_listening``
    is called. Only permission and audio setup failures end the session on
    their own; transcription and dispatch failures end the current chunk and
    the next one is scheduled after ``restart_delay``.
    """

    def __init__(
        self,
        recorder: Recorder,
        transcriber: Transcriber,
        dispatcher: CommandDispatcher,
        speech: SpeechCoordinator,
        events: EventBus,
        *,
        policy: TranscriptPolicy | None = None,
        min_audio_bytes: int = 2000,
        utterance_timeout: float = 1.2,
        max_chunk: float = 5.0,
        restart_delay: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.recorder = recorder
        self.transcriber = transcriber
        self.dispatcher = dispatcher
        self.speech = speech
        self.events = events
        self.policy = policy or TranscriptPolicy()
        self.min_audio_bytes = min_audio_bytes
        self.utterance_timeout = utterance_timeout
        self.max_chunk = max_chunk
        self.restart_delay = restart_delay
        self._clock = clock
        self.state = SessionState()
        self.last_result: CommandResult | None = None
        self._stopped: asyncio.Event | None = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def listening(self) -> bool:
        return self.state.listening

    def snapshot(self) -> dict[str, object]:
        payload = self.state.to_payload()
        payload["status"] = self.events.last_status
        payload["speaking"] = self.speech.suppressed
        return payload

    async def start_listening(self) -> CommandResult:
        state = self.state
        if state.phase is not SessionPhase.IDLE or state.processing_command:
            logger.debug("start_listening ignored in phase %s", state.phase.value)
            return CommandResult(True, "Already listening")

        state.phase = SessionPhase.ACQUIRING
        self.events.status("Requesting microphone access")
        try:
            granted = await self.recorder.request_permission()
        except Exception as exc:
            logger.warning("Permission request failed: %s", exc)
            granted = False
        if not granted:
            return await self._abort("Microphone permission required. Access denied.")
        if state.phase is not SessionPhase.ACQUIRING:
            return CommandResult(False, "Listening cancelled")

        if not state.audio_configured:
            try:
                await self.recorder.configure()
            except Exception as exc:
                logger.exception("Audio mode setup failed")
                return await self._abort(f"Audio setup failed: {exc}")
            state.audio_configured = True

        try:
            ready = await self.transcriber.ready()
        except Exception as exc:
            logger.warning("Recognizer check failed: %s", exc)
            ready = False
        if not ready:
            return await self._abort("Speech recognizer unavailable.")
        if state.phase is not SessionPhase.ACQUIRING:
            return CommandResult(False, "Listening cancelled")

        state.phase = SessionPhase.LISTENING
        state.listening = True
        self._stopped = asyncio.Event()
        self.events.listening_changed(True)
        self.events.status("Listening...")
        await self.speech.speak("Listening to your command.")
        state.loop_task = asyncio.create_task(self._run_chunks(self._stopped, state.loop_task))
        return CommandResult(True, "Listening started")

    async def stop_listening(self) -> CommandResult:
        state = self.state
        if state.phase is SessionPhase.IDLE and not state.listening and state.recording is None:
            return CommandResult(True, "Not listening")

        state.listening = False
        state.phase = SessionPhase.IDLE
        if self._stopped is not None:
            self._stopped.set()
        self._cancel_timers()
        await self._discard_recording()

        self.events.listening_changed(False)
        self.events.status("Stop listening")
        await self.speech.speak("Stop listening")
        return CommandResult(True, "Listening stopped")

    async def shutdown(self) -> None:
        await self.stop_listening()
        task, self.state.loop_task = self.state.loop_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.speech.stop_speaking()

    # ------------------------------------------------------------------ #
    # Chunk loop
    # ------------------------------------------------------------------ #
    async def _run_chunks(self, stopped: asyncio.Event, previous: asyncio.Task | None = None) -> None:
        # a loop from an earlier session may still be parked in recorder.start()
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        while self.state.listening and not stopped.is_set():
            while self.speech.suppressed and not stopped.is_set():
                await self.speech.wait_until_idle()
            if stopped.is_set():
                break
            try:
                await self._run_chunk(stopped)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Chunk failed")
                self.events.status("Error while processing audio")
            if not stopped.is_set():
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stopped.wait(), timeout=self.restart_delay)
        logger.debug("Chunk loop finished")

    async def _run_chunk(self, stopped: asyncio.Event) -> None:
        state = self.state
        if state.preparing_chunk or self.speech.suppressed:
            return
        state.preparing_chunk = True
        try:
            await self._discard_recording()
            try:
                handle = await self.recorder.start()
            except Exception as exc:
                logger.warning("Error starting recording: %s", exc)
                self.events.status("Error starting recording")
                return
            if stopped.is_set() or not state.listening:
                await self._stop_handle(handle)
                return
            state.recording = handle
            state.chunks += 1
        finally:
            state.preparing_chunk = False

        audio = await self._await_chunk_end(handle, stopped)
        if audio is not None:
            await self._process(audio)

    async def _await_chunk_end(self, handle: RecordingHandle, stopped: asyncio.Event) -> bytes | None:
        state = self.state
        silence = asyncio.create_task(self._watch_silence(handle))
        expiry = asyncio.create_task(self._expire_chunk())
        stop_wait = asyncio.create_task(stopped.wait())
        state.utterance_timer, state.chunk_timer = silence, expiry
        try:
            await asyncio.wait({silence, expiry, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (silence, expiry, stop_wait):
                if not task.done():
                    task.cancel()
            if state.utterance_timer is silence:
                state.utterance_timer = None
            if state.chunk_timer is expiry:
                state.chunk_timer = None

        # stop_listening already flushed it
        if state.recording is not handle:
            return None
        state.recording = None
        try:
            audio = await handle.stop()
        except Exception as exc:
            logger.warning("Error stopping recording: %s", exc)
            self.events.status("Error reading recorded audio")
            return None
        return None if stopped.is_set() else audio

    async def _process(self, audio: bytes) -> None:
        if len(audio) < self.min_audio_bytes:
            logger.debug("Chunk of %d bytes treated as silence", len(audio), extra={"chunk": self.state.chunks})
            self.events.status(NO_COMMAND)
            return

        self._set_processing(True)
        try:
            try:
                transcript = await self.transcriber.transcribe(audio)
            except Exception as exc:
                logger.warning("Transcription failed: %s", exc)
                transcript = None
            if transcript is None or not self.policy.accept(transcript):
                self.events.status(NO_COMMAND)
                return
            self.events.status(f"Heard: {transcript.text}")
            self.last_result = await self.dispatcher.dispatch(transcript.text)
            logger.info(
                "Dispatch result: %s",
                self.last_result.to_payload(),
                extra={"phase": self.state.phase.value, "chunk": self.state.chunks},
            )
        finally:
            self._set_processing(False)

    # ------------------------------------------------------------------ #
    # Timers
    # ------------------------------------------------------------------ #
    async def _watch_silence(self, handle: RecordingHandle) -> None:
        poll = max(0.01, min(0.1, self.utterance_timeout / 4))
        while True:
            await asyncio.sleep(poll)
            last = handle.last_activity
            if last is not None and self._clock() - last >= self.utterance_timeout:
                return

    async def _expire_chunk(self) -> None:
        await asyncio.sleep(self.max_chunk)

    def _cancel_timers(self) -> None:
        state = self.state
        for timer in (state.utterance_timer, state.chunk_timer):
            if timer is not None and not timer.done():
                timer.cancel()
        state.utterance_timer = None
        state.chunk_timer = None

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    async def _abort(self, message: str) -> CommandResult:
        self.state.phase = SessionPhase.IDLE
        self.state.listening = False
        self.events.status(message)
        await self.speech.speak(message)
        return CommandResult(False, message)

    async def _discard_recording(self) -> None:
        handle, self.state.recording = self.state.recording, None
        if handle is not None:
            await self._stop_handle(handle)

    async def _stop_handle(self, handle: RecordingHandle) -> None:
        try:
            await handle.stop()
        except Exception as exc:
            logger.warning("Error discarding recording: %s", exc)

    def _set_processing(self, processing: bool) -> None:
        state = self.state
        state.processing_command = processing
        if processing:
            state.phase = SessionPhase.PROCESSING
        else:
            state.phase = SessionPhase.LISTENING if state.listening else SessionPhase.IDLE
        self.events.processing_changed(processing)
