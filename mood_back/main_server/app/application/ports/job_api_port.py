from __future__ import annotations

from typing import Generic, Protocol, TypeVar

from mood_back.main_server.app.domain.jobs_domain import Job, JobKind, SubmitReceipt

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")


# One remote job service (analysis, image or music).
# Implementations talk to the wire; polling policy lives in JobStatusClient.
class JobApiPort(Protocol, Generic[RequestT, ResultT]):
    kind: JobKind

    async def submit(self, request: RequestT) -> SubmitReceipt:
        ...

    async def get_status(self, job_id: str) -> Job[RequestT, ResultT]:
        ...
