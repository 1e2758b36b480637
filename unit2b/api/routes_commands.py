from __future__ import annotations

from fastapi import APIRouter, Depends

from unit2b.runtime.assistant import Assistant

from .deps import get_assistant

router = APIRouter(prefix="/commands", tags=["commands"])


@router.get("")
async def list_commands(assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    items = [
        {
            "phrase": command.phrase,
            "keywords": list(command.keywords),
            "description": command.description,
        }
        for command in assistant.registry
    ]
    return {"items": items, "wake_word": assistant.settings.wake_word}
