from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from unit2b.api import (
    apps_router,
    commands_router,
    dispatch_router,
    health_router,
    history_router,
    session_router,
)
from unit2b.core.errors import AssistantError, error_response
from unit2b.core.logger import get_logger
from unit2b.core.trace import get_trace_id, new_trace_id, set_trace_id
from unit2b.runtime.assistant import Assistant, build_assistant

logger = get_logger("server")


def create_app(assistant: Assistant | None = None) -> FastAPI:
    """Application HTTP; l'assistant est construit au demarrage s'il n'est pas fourni."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        if getattr(app.state, "assistant", None) is None:
            app.state.assistant = build_assistant()
        yield
        await app.state.assistant.shutdown()

    app = FastAPI(title="Unit 2B", lifespan=_lifespan)
    app.state.assistant = assistant

    @app.middleware("http")
    async def _trace_middleware(request: Request, call_next):
        tid = request.headers.get("X-Trace-Id") or new_trace_id()
        set_trace_id(tid)
        response = await call_next(request)
        response.headers["X-Trace-Id"] = tid
        return response

    @app.exception_handler(AssistantError)
    async def _assistant_error(request: Request, exc: AssistantError) -> JSONResponse:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content=error_response(type(exc).__name__, str(exc), trace_id=get_trace_id()),
        )

    app.include_router(health_router)
    app.include_router(dispatch_router)
    app.include_router(session_router)
    app.include_router(history_router)
    app.include_router(commands_router)
    app.include_router(apps_router)
    return app


app = create_app()
