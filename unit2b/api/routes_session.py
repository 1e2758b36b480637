from __future__ import annotations

from fastapi import APIRouter, Depends

from unit2b.runtime.assistant import Assistant

from .deps import get_assistant

router = APIRouter(prefix="/session", tags=["session"])


@router.get("")
async def session_state(assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    return assistant.session.snapshot()


@router.post("/start")
async def start_session(assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    result = await assistant.session.start_listening()
    return {**result.to_payload(), "session": assistant.session.snapshot()}


@router.post("/stop")
async def stop_session(assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    result = await assistant.session.stop_listening()
    return {**result.to_payload(), "session": assistant.session.snapshot()}
