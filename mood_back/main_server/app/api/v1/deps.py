# main_server/app/api/v1/deps.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from fastapi import Request

from mood_back.main_server.app.adapters.album.memory_album_store import InMemoryAlbumStore
from mood_back.main_server.app.adapters.generation.http_job_api import build_job_apis
from mood_back.main_server.app.adapters.provenance.memory_store import InMemoryProvenanceStore
from mood_back.main_server.app.adapters.provenance.redis_store import RedisProvenanceStore
from mood_back.main_server.app.application.job_status_client import JobStatusClient
from mood_back.main_server.app.application.ports.provenance_store_port import ProvenanceStore
from mood_back.main_server.app.application.provenance_log import ProvenanceLog
from mood_back.main_server.app.application.usecases.retry_job_usecase import RetryCoordinator
from mood_back.main_server.app.application.usecases.run_pipeline_usecase import PipelineOrchestrator
from mood_back.main_server.app.config import PipelineConfig
from mood_back.main_server.app.domain.jobs_domain import JobKind
from mood_back.main_server.app.infra.redis import close_redis, get_redis

log = logging.getLogger(__name__)


# ------------------------------------------------------------
# Container: everything a request or a CLI command needs
# ------------------------------------------------------------
@dataclass
class Container:
    config: PipelineConfig
    clients: dict[JobKind, JobStatusClient]
    provenance: ProvenanceLog
    orchestrator: PipelineOrchestrator
    retries: dict[JobKind, RetryCoordinator]
    albums: InMemoryAlbumStore
    _http: Optional[httpx.AsyncClient] = field(default=None, repr=False)
    _redis_url: Optional[str] = field(default=None, repr=False)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
        if self._redis_url is not None:
            await close_redis(self._redis_url)


def build_store(config: PipelineConfig) -> ProvenanceStore:
    if config.provenance_backend == "redis":
        return RedisProvenanceStore(get_redis(config.redis_url), key=config.provenance_key)
    if config.provenance_backend == "memory":
        return InMemoryProvenanceStore()
    raise ValueError(f"Unknown provenance backend: {config.provenance_backend!r}")


async def build_container(
    config: PipelineConfig,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    store: Optional[ProvenanceStore] = None,
) -> Container:
    """
    Assemble the pipeline from configuration.
    An injected http_client or store stays owned by the caller.
    """
    owned_http = None
    if http_client is None:
        owned_http = http_client = httpx.AsyncClient(timeout=config.http_timeout_seconds)

    owned_redis_url = None
    if store is None:
        store = build_store(config)
        if config.provenance_backend == "redis":
            owned_redis_url = config.redis_url

    apis = build_job_apis(config.gen_server_url, http_client)
    clients = {
        JobKind.ANALYSIS: JobStatusClient(apis[JobKind.ANALYSIS], poll=config.analysis_poll),
        JobKind.IMAGE: JobStatusClient(apis[JobKind.IMAGE], poll=config.image_poll),
        JobKind.MUSIC: JobStatusClient(apis[JobKind.MUSIC], poll=config.music_poll),
    }

    try:
        provenance = await ProvenanceLog.open(store, retention_days=config.retention_days)
    except Exception:
        if owned_http is not None:
            await owned_http.aclose()
        raise
    albums = InMemoryAlbumStore()
    orchestrator = PipelineOrchestrator(
        analysis=clients[JobKind.ANALYSIS],
        image=clients[JobKind.IMAGE],
        music=clients[JobKind.MUSIC],
        provenance=provenance,
        albums=albums,
        default_style_preset=config.default_style_preset,
    )
    log.info(
        "Pipeline ready | gen_server=%s | provenance=%s",
        config.gen_server_url, config.provenance_backend,
    )
    return Container(
        config=config,
        clients=clients,
        provenance=provenance,
        orchestrator=orchestrator,
        retries={kind: RetryCoordinator(client) for kind, client in clients.items()},
        albums=albums,
        _http=owned_http,
        _redis_url=owned_redis_url,
    )


# ------------------------------------------------------------
# FastAPI dependencies
# ------------------------------------------------------------
def get_container(request: Request) -> Container:
    return request.app.state.container


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return get_container(request).orchestrator


def get_provenance_log(request: Request) -> ProvenanceLog:
    return get_container(request).provenance


def get_retry_coordinators(request: Request) -> dict[JobKind, RetryCoordinator]:
    return get_container(request).retries
