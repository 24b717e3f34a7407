# main_server/app/application/job_status_client.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from mood_back.main_server.app.application.ports.job_api_port import JobApiPort
from mood_back.main_server.app.config import PollConfig
from mood_back.main_server.app.domain.errors_domain import PollCancelledError, PollTimeoutError
from mood_back.main_server.app.domain.jobs_domain import Job, JobKind, SubmitReceipt

log = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")

OnUpdate = Callable[[Job], None]


class JobStatusClient(Generic[RequestT, ResultT]):
    """
    Uniform client for one kind of remote asynchronous job.

    The same class drives analysis, image and music jobs; only the JobApi
    and the default poll settings differ.
    """

    def __init__(
        self,
        api: JobApiPort[RequestT, ResultT],
        *,
        poll: PollConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self._poll = poll
        self._sleep = sleep

    @property
    def kind(self) -> JobKind:
        return self._api.kind

    @property
    def poll_config(self) -> PollConfig:
        return self._poll

    async def submit(self, request: RequestT) -> SubmitReceipt:
        receipt = await self._api.submit(request)
        log.info("%s job submitted: %s", self.kind.value, receipt.job_id)
        return receipt

    async def get_status(self, job_id: str) -> Job[RequestT, ResultT]:
        return await self._api.get_status(job_id)

    async def poll_to_terminal(
        self,
        job_id: str,
        on_update: Optional[OnUpdate] = None,
        *,
        max_attempts: Optional[int] = None,
        interval_ms: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Job[RequestT, ResultT]:
        """
        Fetch the job status every interval until it is succeeded or failed.

        At most max_attempts fetches are made. Cancellation is checked before
        each fetch, so a signal set during the sleep stops the next fetch.
        Transport errors propagate unchanged.
        """
        attempts = max_attempts if max_attempts is not None else self._poll.max_attempts
        interval = interval_ms if interval_ms is not None else self._poll.interval_ms
        if attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        for attempt in range(1, attempts + 1):
            if cancel is not None and cancel.is_set():
                log.info("%s job %s: polling cancelled", self.kind.value, job_id)
                raise PollCancelledError(job_id)

            job = await self._api.get_status(job_id)
            log.debug(
                "%s job %s poll %d/%d: %s",
                self.kind.value, job_id, attempt, attempts, job.status.value,
            )
            if on_update is not None:
                on_update(job)

            if job.is_terminal:
                return job

            if attempt < attempts:
                await self._sleep(interval / 1000.0)

        log.warning(
            "%s job %s still not terminal after %d polls (%d ms interval)",
            self.kind.value, job_id, attempts, interval,
        )
        raise PollTimeoutError(job_id, attempts)

    async def run(
        self,
        request: RequestT,
        on_update: Optional[OnUpdate] = None,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> Job[RequestT, ResultT]:
        """submit + poll_to_terminal with this client's defaults."""
        receipt = await self.submit(request)
        return await self.poll_to_terminal(receipt.job_id, on_update, cancel=cancel)
