from __future__ import annotations

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter, Depends

from unit2b.runtime.assistant import Assistant

from .deps import get_assistant

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def get_health(assistant: Assistant = Depends(get_assistant)) -> dict[str, object]:
    """Retourne l'état de santé de l'assistant."""
    try:
        pkg_version = version("unit2b")
    except PackageNotFoundError:  # pragma: no cover - dépend de l'installation
        pkg_version = "unknown"

    db_ok = await assistant.history.ping()
    return {
        "status": "ok" if db_ok else "error",
        "version": pkg_version,
        "time": datetime.now(timezone.utc).isoformat(),
        "assistant": assistant.settings.assistant_name,
        "db_ok": db_ok,
        "llm_configured": bool(getattr(assistant.llm, "configured", True)),
        "listening": assistant.session.listening,
    }
