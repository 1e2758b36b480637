from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from unit2b.core.schemas import HistoryType
from unit2b.runtime.assistant import Assistant

from .deps import get_assistant

router = APIRouter(prefix="/history", tags=["history"])


@router.get("")
async def list_history(
    limit: int = Query(50, ge=1, le=500),
    q: str | None = Query(default=None),
    type: HistoryType | None = Query(default=None),
    assistant: Assistant = Depends(get_assistant),
) -> dict[str, Any]:
    entries = await assistant.history.read(query=q, entry_type=type, limit=limit)
    return {"items": [entry.to_payload() for entry in entries], "count": len(entries)}


@router.delete("")
async def purge_history(assistant: Assistant = Depends(get_assistant)) -> dict[str, str]:
    await assistant.history.clear()
    return {"status": "cleared"}
