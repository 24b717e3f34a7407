# gen_server/app/api/routers/image.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from mood_back.gen_server.app.api.deps import SubmitResponse, WireModel, get_jobs, job_or_404, submit_response
from mood_back.gen_server.app.job_table import JobTable

router = APIRouter(prefix="/api", tags=["image"])


class ImageGenerateRequest(WireModel):
    mood: str = Field(min_length=1)
    duration: int = Field(ge=1)
    motif_tags: List[str] = Field(default_factory=list, alias="motifTags")
    style_preset: Optional[str] = Field(default=None, alias="stylePreset")
    seed: Optional[int] = None
    valence: Optional[float] = None
    arousal: Optional[float] = None
    focus: Optional[float] = None
    confidence: Optional[float] = None


@router.post("/image/generate", response_model=SubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_image(body: ImageGenerateRequest, jobs: JobTable = Depends(get_jobs)):
    job = jobs.submit("image", body.model_dump(mode="json", by_alias=True, exclude_none=True))
    return submit_response(job, "Image generation job queued")


@router.get("/job/{job_id}")
async def get_image_job(job_id: str, jobs: JobTable = Depends(get_jobs)):
    return job_or_404(jobs, job_id, "image")


"""
    Retry of any job kind: the recorded input is queued again under a new id.
"""
@router.post("/job/{job_id}/retry", response_model=SubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def retry_job(job_id: str, jobs: JobTable = Depends(get_jobs)):
    job = jobs.retry(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail={"error": "Job not found", "message": f"No job {job_id}"})
    return submit_response(job, f"Retry of {job_id} queued")
