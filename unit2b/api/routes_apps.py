from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from unit2b.runtime.assistant import Assistant

from .deps import get_assistant

router = APIRouter(prefix="/apps", tags=["apps"])


class ResolvePayload(BaseModel):
    query: str = Field(..., min_length=1, max_length=200)


@router.get("")
async def list_apps(
    q: str | None = Query(default=None),
    assistant: Assistant = Depends(get_assistant),
) -> dict[str, object]:
    apps = await assistant.inventory.list_apps()
    if q and q.strip():
        needle = q.strip().lower()
        apps = [app for app in apps if needle in app.name.lower() or needle in app.package_id.lower()]
    return {"items": [app.to_payload() for app in apps], "count": len(apps)}


@router.post("/resolve")
async def resolve_app(payload: ResolvePayload, assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    """Resolution sans lancement, pour diagnostiquer les alias et seuils."""
    apps = await assistant.inventory.list_apps()
    match = assistant.resolver.resolve(payload.query, apps)
    if match is None:
        return {
            "found": False,
            "message": assistant.resolver.describe_miss(payload.query, apps),
            "suggestions": [app.to_payload() for app in assistant.resolver.suggest(payload.query, apps)],
        }
    return {
        "found": True,
        "app": match.app.to_payload(),
        "confidence": round(match.confidence, 3),
        "strategy": match.strategy,
    }
