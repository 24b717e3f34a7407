# gen_server/app/api/routers/analyze.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from mood_back.gen_server.app.api.deps import SubmitResponse, WireModel, get_jobs, job_or_404, submit_response
from mood_back.gen_server.app.job_table import JobTable

router = APIRouter(prefix="/api/analyze", tags=["analysis"])


class OnboardingIn(WireModel):
    emotional_profile: Optional[str] = Field(default=None, alias="emotionalProfile")


class AnalyzeRequest(WireModel):
    mood: str = Field(min_length=1)
    duration: int = Field(ge=1)
    free_text: Optional[str] = Field(default=None, alias="freeText")
    onboarding_data: Optional[OnboardingIn] = Field(default=None, alias="onboardingData")
    timestamp: Optional[datetime] = None


@router.post("", response_model=SubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_analysis(body: AnalyzeRequest, jobs: JobTable = Depends(get_jobs)):
    job = jobs.submit("analysis", body.model_dump(mode="json", by_alias=True, exclude_none=True))
    return submit_response(job, "Analysis job queued")


@router.get("/{job_id}")
async def get_analysis(job_id: str, jobs: JobTable = Depends(get_jobs)):
    return job_or_404(jobs, job_id, "analysis")
