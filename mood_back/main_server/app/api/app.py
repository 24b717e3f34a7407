# main_server/app/api/app.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from mood_back.main_server.app.api.v1.deps import Container, build_container
from mood_back.main_server.app.api.v1.routers.health import router as health_router
from mood_back.main_server.app.api.v1.routers.jobs import router as jobs_router
from mood_back.main_server.app.api.v1.routers.pipeline import router as pipeline_router
from mood_back.main_server.app.api.v1.routers.provenance import router as provenance_router
from mood_back.main_server.app.config import PipelineConfig, load_config


def create_app(
    config: Optional[PipelineConfig] = None,
    *,
    container: Optional[Container] = None,
) -> FastAPI:
    """
    A prebuilt container is used as is and left open at shutdown;
    otherwise one is built from config (or the environment) at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if container is not None:
            app.state.container = container
            yield
            return
        built = await build_container(config or load_config())
        app.state.container = built
        try:
            yield
        finally:
            await built.aclose()

    app = FastAPI(title="Mood Main Server", version="1.0.0", lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(pipeline_router)
    app.include_router(provenance_router)
    app.include_router(jobs_router)
    return app
