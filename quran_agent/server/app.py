"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quran_agent import __version__
from quran_agent.bootstrap import AgentStack, build_stack
from quran_agent.config import AgentSettings, load_config
from quran_agent.server.routes import router

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Invalid request: {details}"},
        )


def create_app(
    settings: AgentSettings | None = None,
    *,
    stack: AgentStack | None = None,
    demo: bool = False,
) -> FastAPI:
    """
    Build the application.

    Pass *stack* to serve prebuilt collaborators (tests do this); otherwise
    the stack is built from *settings* at startup and closed at shutdown.
    """
    settings = settings or (stack.settings if stack else load_config())

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        owned = stack is None
        app.state.stack = stack or await build_stack(settings, demo=demo)
        try:
            yield
        finally:
            if owned:
                await app.state.stack.aclose()

    app = FastAPI(title="Quran Research Agent", version=__version__, lifespan=_lifespan)
    if stack is not None:
        app.state.stack = stack

    register_error_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(router)
    return app
