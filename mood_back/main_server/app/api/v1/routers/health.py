# main_server/app/api/v1/routers/health.py
from fastapi import APIRouter, Depends

from mood_back.main_server.app.api.v1.deps import Container, get_container

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(container: Container = Depends(get_container)):
    return {
        "status": "ok",
        "genServerUrl": container.config.gen_server_url,
        "provenanceBackend": container.config.provenance_backend,
        "provenanceLogs": len(container.provenance.records),
    }
