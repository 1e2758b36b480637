"""Data records shared by the command engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, Union


class HistoryType(str, Enum):
    """Kind of action recorded in the history log."""

    COMMAND = "command"
    LLM = "llm"


class LaunchFailure(str, Enum):
    """Reason an application could not be launched."""

    SECURITY = "security"
    NOT_FOUND = "not_found"
    NO_LAUNCHER = "no_launcher"
    OTHER = "other"


LAUNCH_FAILURE_MESSAGES: dict[LaunchFailure, str] = {
    LaunchFailure.SECURITY: "This app is protected by the system and cannot be launched externally.",
    LaunchFailure.NOT_FOUND: "Application not found.",
    LaunchFailure.NO_LAUNCHER: "This app does not have a launchable activity.",
    LaunchFailure.OTHER: "Failed to launch application.",
}


@dataclass(slots=True)
class CommandResult:
    """Outcome of a dispatch or listen operation."""

    success: bool
    message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


@dataclass(slots=True)
class CommandContext:
    """Arguments handed to a command action."""

    text: str
    speak: Callable[[str], Awaitable[None]]
    status: Callable[[str], None]
    launch_app: Callable[[str], Awaitable[CommandResult]]
    list_apps: Callable[[], Awaitable[Sequence["InstalledApp"]]]


CommandAction = Union[
    Callable[[], Awaitable[Optional[CommandResult]]],
    Callable[[CommandContext], Awaitable[Optional[CommandResult]]],
]


@dataclass(frozen=True, slots=True)
class Command:
    """A built-in voice command."""

    phrase: str
    action: CommandAction
    keywords: tuple[str, ...] = ()
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "phrase", self.phrase.strip().lower())
        object.__setattr__(self, "keywords", tuple(k.strip().lower() for k in self.keywords if k.strip()))


@dataclass(frozen=True, slots=True)
class InstalledApp:
    """Application known to the inventory."""

    package_id: str
    name: str
    version: str | None = None
    icon: str | None = None
    is_system: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "package_id": self.package_id,
            "name": self.name,
            "version": self.version,
            "is_system": self.is_system,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "InstalledApp":
        package_id = str(payload.get("package_id") or payload.get("packageName") or payload.get("package") or "unknown")
        return cls(
            package_id=package_id,
            name=str(payload.get("name") or payload.get("appName") or "Unknown App"),
            version=payload.get("version"),
            icon=payload.get("icon"),
            is_system=bool(payload.get("is_system", False)),
        )


@dataclass(frozen=True, slots=True)
class AppMatch:
    """Application selected for a free-text query."""

    app: InstalledApp
    confidence: float
    strategy: str


@dataclass(slots=True)
class LaunchResult:
    """Result returned by an application launcher."""

    success: bool
    reason: LaunchFailure | None = None
    error: str | None = None

    @classmethod
    def failed(cls, reason: LaunchFailure, error: str | None = None) -> "LaunchResult":
        return cls(success=False, reason=reason, error=error or LAUNCH_FAILURE_MESSAGES[reason])


@dataclass(frozen=True, slots=True)
class Transcript:
    """Speech-to-text output for one captured chunk."""

    text: str
    confidence: Optional[float] = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass(slots=True)
class HistoryEntry:
    """One row of the history log."""

    id: int | None
    timestamp: float
    type: HistoryType
    command: str = ""
    question: str | None = None
    response: str | None = None
    short: str | None = None
    expandable: bool = False

    @property
    def display(self) -> str:
        if self.type is HistoryType.LLM:
            return (self.response or self.question or "").strip()
        return self.command.strip()

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "command": self.command,
            "question": self.question,
            "response": self.response,
            "short": self.short,
            "expandable": self.expandable,
        }
