# gen_server/app/api/deps.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from mood_back.gen_server.app.job_table import GenJob, JobTable


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubmitResponse(WireModel):
    job_id: str = Field(alias="jobId")
    status: str
    message: str


def get_jobs(request: Request) -> JobTable:
    return request.app.state.jobs


def submit_response(job: GenJob, message: str) -> SubmitResponse:
    return SubmitResponse(job_id=job.id, status=job.status, message=message)


def job_or_404(jobs: JobTable, job_id: str, kind: str) -> Dict[str, Any]:
    job = jobs.get(job_id, kind)
    if job is None:
        raise HTTPException(status_code=404, detail={"error": "Job not found", "message": f"No {kind} job {job_id}"})
    return job.to_wire()
