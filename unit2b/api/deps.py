from __future__ import annotations

from fastapi import HTTPException, Request

from unit2b.runtime.assistant import Assistant


def get_assistant(request: Request) -> Assistant:
    """Assistant unique attache a l'application au demarrage."""
    assistant = getattr(request.app.state, "assistant", None)
    if assistant is None:
        raise HTTPException(status_code=503, detail="Assistant not ready")
    return assistant
