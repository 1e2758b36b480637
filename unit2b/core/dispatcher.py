"""Routage d'une transcription vers le LLM, une application ou une commande."""

from __future__ import annotations

import asyncio
import inspect
import re
from typing import Awaitable, Callable, Sequence

from unit2b.core.history import HistoryStore
from unit2b.core.logger import get_logger
from unit2b.core.registry import CommandRegistry, normalize
from unit2b.core.resolver import AppResolver
from unit2b.core.schemas import Command, CommandContext, CommandResult, InstalledApp, LaunchFailure, LaunchResult
from unit2b.core.trace import new_trace_id
from unit2b.services.protocols import AppInventory, ChatBackend

logger = get_logger("dispatch")

SpeakFn = Callable[[str], Awaitable[None]]
StatusFn = Callable[[str], None]

_LAUNCH_RE = re.compile(r"^(open|launch|start)\s+(.+)$")
_OPEN_APP_RE = re.compile(r"^\s*OPEN_APP:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)

_TRIGGER_PROMPT = (
    'User asked: "{query}". You are {name}, a concise and helpful voice assistant. '
    "Reply briefly (one or two short sentences) in {name} style. If the audio appears noisy "
    "or the question is unclear, infer the most likely intent and answer succinctly; if you "
    "cannot safely infer intent, ask one short clarifying question."
)
_FALLBACK_PROMPT = (
    'User said: "{text}". You are {name}, a concise useful voice assistant. Reply briefly '
    "(one or two sentences). If the user intends to open an application, respond exactly "
    "with: OPEN_APP: <app name>. Otherwise give a short helpful answer."
)


def _ignore_status(message: str) -> None:
    return None


class CommandDispatcher:
    """Arbre de decision applique a chaque transcription.

    Ordre: mot d'eveil vers le LLM, ``open|launch|start <app>``, registre de
    commandes, nom d'application nu (alias), puis LLM avec directive
    ``OPEN_APP``. Aucune exception d'un collaborateur ne traverse ``dispatch``.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        resolver: AppResolver,
        inventory: AppInventory,
        history: HistoryStore,
        llm: ChatBackend,
        *,
        speak: SpeakFn,
        status: StatusFn | None = None,
        wake_word: str = "2b",
        assistant_name: str = "Unit 2B",
        llm_timeout: float = 20.0,
    ) -> None:
        self.registry = registry
        self.resolver = resolver
        self.inventory = inventory
        self.history = history
        self.llm = llm
        self._speak_fn = speak
        self._status_fn = status or _ignore_status
        self.wake_word = wake_word.strip().lower()
        self.assistant_name = assistant_name
        self.llm_timeout = llm_timeout
        self._wake_re = re.compile(rf"\b{re.escape(self.wake_word)}\b", re.IGNORECASE)
        self._wake_prefix_re = re.compile(rf".*?\b{re.escape(self.wake_word)}\b[\s:,-]*", re.IGNORECASE | re.DOTALL)

    async def dispatch(self, transcript: str) -> CommandResult:
        new_trace_id()
        normalized = normalize(transcript)
        if not normalized:
            return CommandResult(False, "No command detected.")
        logger.info("Dispatching transcript (%d chars)", len(normalized))
        try:
            return await self._route(transcript, normalized)
        except Exception:
            logger.exception("Unexpected dispatch failure")
            return CommandResult(False, "An error occurred while processing the command.")

    async def _route(self, transcript: str, normalized: str) -> CommandResult:
        if self._wake_re.search(normalized):
            logger.info("Wake word detected", extra={"route": "assistant"})
            return await self._ask_assistant(transcript, normalized)

        match = _LAUNCH_RE.match(normalized)
        if match:
            logger.info("Explicit launch request", extra={"route": "launch"})
            return await self.launch_app(match.group(2).strip())

        command = self.registry.resolve(normalized)
        if command is not None:
            logger.info("Registry match", extra={"route": "command", "command": command.phrase})
            return await self._run_command(command, normalized)

        if self.resolver.alias_for(normalized) is not None:
            logger.info("Bare alias", extra={"route": "alias"})
            return await self.launch_app(normalized)

        logger.info("No local rule matched", extra={"route": "fallback"})
        return await self._fallback(transcript)

    # ------------------------------------------------------------------ #
    # Rules
    # ------------------------------------------------------------------ #
    async def _ask_assistant(self, transcript: str, normalized: str) -> CommandResult:
        query = self._wake_remainder(transcript, normalized)
        if not query:
            msg = f'Please provide a question after "{self.wake_word}".'
            await self._speak(msg)
            return CommandResult(False, msg)

        prompt = _TRIGGER_PROMPT.format(query=query, name=self.assistant_name)
        reply = await self._complete(prompt)
        if not reply:
            msg = "Unable to get a response from the assistant."
            self._status(msg)
            await self._speak(msg)
            return CommandResult(False, msg)

        self._status(reply)
        await self._speak(reply)
        await self._record_interaction(query, reply)
        return CommandResult(True, "LLM response delivered")

    async def launch_app(self, query: str, *, record: bool = True) -> CommandResult:
        """Resout ``query`` puis lance l'application correspondante."""
        query = query.strip()
        if not query:
            msg = "Please specify an application name"
            self._status(msg)
            await self._speak(msg)
            return CommandResult(False, msg)

        self._status(f"Searching for {query}")
        apps = await self._list_apps()
        match = self.resolver.resolve(query, apps)
        if match is None:
            msg = self.resolver.describe_miss(query, apps)
            self._status(msg)
            await self._speak(msg)
            return CommandResult(False, msg)

        name = match.app.name
        logger.info(
            "Resolved %r via %s (%.2f)",
            query,
            match.strategy,
            match.confidence,
            extra={"package_id": match.app.package_id},
        )
        self._status(f"Opening {name}")
        await self._speak(f"Opening {name}")
        try:
            result = await self.inventory.launch(match.app.package_id)
        except Exception as exc:
            logger.warning("Launcher raised for %s: %s", match.app.package_id, exc)
            result = LaunchResult.failed(LaunchFailure.OTHER, str(exc) or None)
        if not result.success:
            msg = f"Failed to launch {name}: {result.error or 'Unable to launch application'}"
            self._status(msg)
            return CommandResult(False, msg)
        if record:
            await self._record_command(f"open {name}")
        return CommandResult(True, f"Launched {name}")

    async def _run_command(self, command: Command, normalized: str) -> CommandResult:
        ctx = CommandContext(
            text=normalized,
            speak=self._speak,
            status=self._status,
            launch_app=lambda query: self.launch_app(query, record=False),
            list_apps=self._list_apps,
        )
        try:
            if inspect.signature(command.action).parameters:
                outcome = await command.action(ctx)  # type: ignore[call-arg]
            else:
                outcome = await command.action()  # type: ignore[call-arg]
        except Exception:
            logger.exception("Command %r failed", command.phrase)
            return CommandResult(False, f"Command failed: {command.phrase}")
        # an action returning a failed result is not recorded
        if outcome is not None and not outcome.success:
            logger.info("Command %r did not complete: %s", command.phrase, outcome.message)
            return CommandResult(False, outcome.message)
        await self._record_command(command.phrase)
        return CommandResult(True, f"Command executed: {command.phrase}")

    async def _fallback(self, transcript: str) -> CommandResult:
        prompt = _FALLBACK_PROMPT.format(text=transcript.strip(), name=self.assistant_name)
        reply = await self._complete(prompt)
        if not reply:
            return CommandResult(False, "Command not recognized")

        directive = _OPEN_APP_RE.search(reply)
        if directive:
            return await self.launch_app(directive.group(1).strip().rstrip("."))

        self._status(reply)
        await self._speak(reply)
        await self._record_interaction(transcript.strip(), reply)
        return CommandResult(True, "LLM response delivered")

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _wake_remainder(self, transcript: str, normalized: str) -> str:
        if self._wake_re.search(transcript):
            return self._wake_prefix_re.sub("", transcript, count=1).strip()
        tokens = normalized.split()
        index = tokens.index(self.wake_word) if self.wake_word in tokens else len(tokens)
        return " ".join(tokens[index + 1:])

    async def _complete(self, prompt: str) -> str | None:
        try:
            reply = await asyncio.wait_for(self.llm.complete(prompt), timeout=self.llm_timeout)
        except asyncio.TimeoutError:
            logger.warning("LLM query timed out after %.1fs", self.llm_timeout)
            return None
        except Exception as exc:
            logger.warning("LLM query failed: %s", exc)
            return None
        reply = (reply or "").strip()
        return reply or None

    async def _list_apps(self) -> Sequence[InstalledApp]:
        try:
            return await self.inventory.list_apps()
        except Exception as exc:
            logger.warning("Error detecting apps: %s", exc)
            return []

    async def _speak(self, text: str) -> None:
        try:
            await self._speak_fn(text)
        except Exception as exc:
            logger.warning("Error speaking: %s", exc)

    def _status(self, message: str) -> None:
        try:
            self._status_fn(message)
        except Exception as exc:
            logger.warning("Status observer failed: %s", exc)

    async def _record_command(self, phrase: str) -> None:
        try:
            await self.history.record_command(phrase)
        except Exception as exc:
            logger.warning("History write failed: %s", exc)

    async def _record_interaction(self, question: str, response: str) -> None:
        try:
            await self.history.record_interaction(question, response)
        except Exception as exc:
            logger.warning("History write failed: %s", exc)
