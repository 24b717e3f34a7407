# gen_server/app/api/routers/music.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from mood_back.gen_server.app.api.deps import SubmitResponse, WireModel, get_jobs, job_or_404, submit_response
from mood_back.gen_server.app.job_table import JobTable

router = APIRouter(prefix="/api/music", tags=["music"])


class MusicGenerateRequest(WireModel):
    valence: float = Field(ge=-1.0, le=1.0)
    arousal: float = Field(ge=0.0, le=1.0)
    focus: float = Field(ge=0.0, le=1.0)
    motif_tags: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    duration: Optional[int] = None
    seed: Optional[int] = None


@router.post("/generate", response_model=SubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_music(body: MusicGenerateRequest, jobs: JobTable = Depends(get_jobs)):
    job = jobs.submit("music", body.model_dump(mode="json", by_alias=True, exclude_none=True))
    return submit_response(job, "Music generation job queued")


@router.get("/{job_id}")
async def get_music(job_id: str, jobs: JobTable = Depends(get_jobs)):
    return job_or_404(jobs, job_id, "music")
