from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.categories import router as categories_router
from src.adapters.api.controllers.obstacles import router as obstacles_router
from src.adapters.api.controllers.routes import router as routes_router
from src.adapters.api.controllers.session import router as session_router
from src.adapters.api.dependencies import build_session
from src.adapters.notifications import NoticeFeed
from src.adapters.scheduling import AsyncioScheduler
from src.domain.exceptions import ObstacleError

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    notices = NoticeFeed()
    scheduler = AsyncioScheduler()
    session = build_session(notices, scheduler)

    app.state.notices = notices
    app.state.session = session
    await session.start()
    try:
        yield
    finally:
        session.close()
        await scheduler.drain()


app = FastAPI(title="Blockage Router", lifespan=lifespan)
app.include_router(session_router)
app.include_router(obstacles_router)
app.include_router(routes_router)
app.include_router(categories_router)


@app.exception_handler(ObstacleError)
async def obstacle_error_handler(request: Request, exc: ObstacleError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so the UI can show them as a notice."""

    logger.exception("Unhandled exception", extra={"path": str(request.url.path)})

    reveal = (os.getenv("BLOCKAGE_ROUTER_REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
