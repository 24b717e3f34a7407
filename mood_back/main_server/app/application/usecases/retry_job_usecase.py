# main_server/app/application/usecases/retry_job_usecase.py
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from mood_back.main_server.app.application.job_status_client import JobStatusClient
from mood_back.main_server.app.domain.errors_domain import RetryPreconditionError
from mood_back.main_server.app.domain.jobs_domain import JobStatus, SubmitReceipt

log = logging.getLogger(__name__)

"""
    Caller-initiated retry: the recorded input of a job is submitted again as a
    brand new job. The new job shares nothing with the old one but the input.
"""


@dataclass(frozen=True)
class RetryCoordinator:
    client: JobStatusClient

    async def retry(self, failed_job_id: str) -> SubmitReceipt:
        job = await self.client.get_status(failed_job_id)
        if job.input is None:
            raise RetryPreconditionError(failed_job_id)

        if job.status != JobStatus.FAILED:
            log.warning(
                "Retrying %s job %s which is %s, not failed",
                self.client.kind.value, failed_job_id, job.status.value,
            )

        receipt = await self.client.submit(dataclasses.replace(job.input))
        log.info("%s job %s retried as %s", self.client.kind.value, failed_job_id, receipt.job_id)
        return receipt
