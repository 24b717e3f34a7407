# gen_server/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse

from mood_back.gen_server.app.api.routers.analyze import router as analyze_router
from mood_back.gen_server.app.api.routers.health import router as health_router
from mood_back.gen_server.app.api.routers.image import router as image_router
from mood_back.gen_server.app.api.routers.music import router as music_router
from mood_back.gen_server.app.config import GenServerSettings, load_settings
from mood_back.gen_server.app.job_table import JobTable
from mood_back.gen_server.app.runners import RUNNERS


def create_app(settings: Optional[GenServerSettings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        jobs = JobTable(settings, RUNNERS)
        app.state.jobs = jobs
        try:
            yield
        finally:
            await jobs.aclose()

    app = FastAPI(title="Mood Generation Server", version="1.0.0", lifespan=lifespan)

    # error bodies are {error, message} at the top level, as clients expect
    @app.exception_handler(HTTPException)
    async def _http_error(request: Request, exc: HTTPException):
        body = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail), "message": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=body)

    app.include_router(health_router)
    app.include_router(analyze_router)
    app.include_router(image_router)
    app.include_router(music_router)
    return app


app = create_app()
