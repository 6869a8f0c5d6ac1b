from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agenda.logging_config import configure_logging
from agenda.routes import habits, journal, preferences, todos, undo
from agenda.workspace import WorkspaceRegistry


def create_app(registry: WorkspaceRegistry | None = None) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.registry = registry or await WorkspaceRegistry.from_settings()
        try:
            yield
        finally:
            await app.state.registry.close()
            app.state.registry = None

    app = FastAPI(title="Agenda API", version="0.1.0", lifespan=lifespan)

    app.include_router(todos.router)
    app.include_router(journal.router)
    app.include_router(habits.router)
    app.include_router(undo.router)
    app.include_router(preferences.router)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logging.getLogger("agenda").exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
