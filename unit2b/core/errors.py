from __future__ import annotations

from typing import Any, Dict


class AssistantError(RuntimeError):
    """Base class for failures raised by collaborators of the assistant."""


class PermissionDeniedError(AssistantError):
    """Microphone access was refused."""


class AudioSetupError(AssistantError):
    """The audio subsystem could not be configured for recording."""


class RecognizerUnavailableError(AssistantError):
    """The speech recognizer is not ready to transcribe."""


class LLMUnavailableError(AssistantError):
    """No LLM provider produced an answer."""


def error_response(code: str, message: str, *, details: Any | None = None, trace_id: str | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    if trace_id is not None:
        payload["error"]["trace_id"] = trace_id
    return payload
