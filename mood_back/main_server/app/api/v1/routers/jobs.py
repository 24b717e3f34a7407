# main_server/app/api/v1/routers/jobs.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from mood_back.main_server.app.api.v1.deps import get_retry_coordinators
from mood_back.main_server.app.application.usecases.retry_job_usecase import RetryCoordinator
from mood_back.main_server.app.domain.errors_domain import (
    JobNotFoundError,
    RetryPreconditionError,
    TransportError,
)
from mood_back.main_server.app.domain.jobs_domain import JobKind, JobStatus

router = APIRouter(prefix="/v1/jobs", tags=["jobs"])


class RetryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus
    message: str = ""


@router.post("/{kind}/{job_id}/retry", response_model=RetryResponse, status_code=status.HTTP_202_ACCEPTED)
async def retry_job(
    kind: JobKind,
    job_id: str,
    retries: dict[JobKind, RetryCoordinator] = Depends(get_retry_coordinators),
):
    try:
        receipt = await retries[kind].retry(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except RetryPreconditionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return RetryResponse(job_id=receipt.job_id, status=receipt.status, message=receipt.message)
