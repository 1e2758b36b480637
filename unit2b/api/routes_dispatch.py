from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from unit2b.runtime.assistant import Assistant

from .deps import get_assistant

router = APIRouter(prefix="/dispatch", tags=["dispatch"])


class DispatchPayload(BaseModel):
    text: str = Field(..., max_length=2000)


@router.post("")
async def dispatch(payload: DispatchPayload, assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    """Traite une transcription comme si elle venait du micro."""
    result = await assistant.dispatch(payload.text)
    body = result.to_payload()
    body["status"] = assistant.events.last_status
    return body
