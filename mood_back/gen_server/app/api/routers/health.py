# gen_server/app/api/routers/health.py
from fastapi import APIRouter, Depends

from mood_back.gen_server.app.api.deps import get_jobs
from mood_back.gen_server.app.job_table import JobTable

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(jobs: JobTable = Depends(get_jobs)):
    return {"status": "ok", "jobs": len(jobs)}
