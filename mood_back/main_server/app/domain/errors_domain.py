# main_server/app/domain/errors_domain.py
from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from mood_back.main_server.app.domain.jobs_domain import Job


class PipelineError(Exception):
    """Base class for every error raised by the generation pipeline."""


class TransportError(PipelineError):
    """
    The request failed before a job resource came back
    (network failure, service unavailable, non-2xx response).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class JobPayloadError(TransportError):
    """The remote answered, but the body does not match the job schema."""


class JobNotFoundError(TransportError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}", status_code=404)


class JobFailedError(PipelineError):
    """The job reached status=failed on the remote side."""

    def __init__(self, job: "Job"):
        self.job = job
        self.job_id = job.id
        self.error_code = job.error_code
        self.error_message = job.failure_message()
        super().__init__(f"Job {job.id} failed: {self.error_message}")


class PollTimeoutError(PipelineError):
    """Client-side polling ceiling reached; the job may still finish remotely."""

    def __init__(self, job_id: str, attempts: int):
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(f"Job polling timeout: {job_id} not terminal after {attempts} attempts")


class PollCancelledError(PipelineError):
    """Polling stopped because the caller asked for it. Not a failure."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Polling cancelled: {job_id}")


class RetryPreconditionError(PipelineError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Cannot retry {job_id}: job input not available")


class ProvenanceLogNotFoundError(PipelineError):
    def __init__(self, log_id: str):
        self.log_id = log_id
        super().__init__(f"Provenance log not found: {log_id}")


class PipelineFailedError(PipelineError):
    """A fatal stage stopped the run before the album was assembled."""

    def __init__(
        self,
        *,
        stage: str,
        message: str,
        log_id: str,
        error_code: Optional[str] = None,
    ):
        self.stage = stage
        self.error_code = error_code
        self.log_id = log_id
        self.message = message
        super().__init__(f"[{stage}] {message}")
