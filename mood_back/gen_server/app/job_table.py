# gen_server/app/job_table.py
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from mood_back.gen_server.app.config import GenServerSettings

log = logging.getLogger(__name__)

# kind -> job input -> fields to set on success
Runner = Callable[["GenJob"], Dict[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


@dataclass
class GenJob:
    id: str
    kind: str
    input: Dict[str, Any]
    created_at: datetime
    status: str = "queued"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Any = None
    result_url: Optional[str] = None
    prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    midi_data: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 3
    provider: str = "rule-based"
    model: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        doc = {
            "id": self.id,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "startedAt": _iso(self.started_at),
            "finishedAt": _iso(self.finished_at),
            "error": self.error,
            "errorCode": self.error_code,
            "errorMessage": self.error_message,
            "retryCount": self.retry_count,
            "maxRetries": self.max_retries,
            "provider": self.provider,
            "model": self.model,
            "input": self.input,
            "result": self.result,
            "resultUrl": self.result_url,
            "prompt": self.prompt,
            "negativePrompt": self.negative_prompt,
            "midiData": self.midi_data,
        }
        return {k: v for k, v in doc.items() if v is not None}


class JobTable:
    """
        In-memory jobs of every kind.
        Each submitted job advances queued -> running -> succeeded|failed
        in its own background task, half the configured latency per step,
        and is evicted job_ttl_seconds after it finishes.
    """

    def __init__(self, settings: GenServerSettings, runners: Dict[str, Runner]) -> None:
        self._settings = settings
        self._runners = runners
        self._jobs: Dict[str, GenJob] = {}
        self._tasks: set[asyncio.Task] = set()

    def submit(self, kind: str, job_input: Dict[str, Any], *, retry_count: int = 0) -> GenJob:
        if kind not in self._runners:
            raise ValueError(f"Unknown job kind: {kind}")
        job = GenJob(
            id=f"{kind}_{uuid.uuid4().hex[:16]}",
            kind=kind,
            input=job_input,
            created_at=_utcnow(),
            retry_count=retry_count,
            max_retries=self._settings.max_retries,
        )
        self._jobs[job.id] = job

        task = asyncio.create_task(self._advance(job), name=f"job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.info("Job %s queued", job.id)
        return job

    def __len__(self) -> int:
        return len(self._jobs)

    def get(self, job_id: str, kind: Optional[str] = None) -> Optional[GenJob]:
        job = self._jobs.get(job_id)
        if job is None or (kind is not None and job.kind != kind):
            return None
        return job

    def retry(self, job_id: str) -> Optional[GenJob]:
        old = self._jobs.get(job_id)
        if old is None:
            return None
        return self.submit(old.kind, dict(old.input), retry_count=old.retry_count + 1)

    async def _advance(self, job: GenJob) -> None:
        await self._execute(job)
        await asyncio.sleep(self._settings.job_ttl_seconds)
        self._jobs.pop(job.id, None)
        log.info("Job %s expired", job.id)

    async def _execute(self, job: GenJob) -> None:
        step = self._settings.latency_seconds / 2
        await asyncio.sleep(step)
        job.status = "running"
        job.started_at = _utcnow()

        await asyncio.sleep(step)
        if job.kind in self._settings.fail_kinds:
            self._fail(job, "PROVIDER_UNAVAILABLE", f"{job.kind} provider is unavailable")
            return
        try:
            fields = self._runners[job.kind](job)
        except (ValueError, KeyError) as e:
            self._fail(job, "INVALID_INPUT", str(e))
            return

        for name, value in fields.items():
            setattr(job, name, value)
        job.status = "succeeded"
        job.finished_at = _utcnow()
        log.info("Job %s succeeded", job.id)

    def _fail(self, job: GenJob, code: str, message: str) -> None:
        job.status = "failed"
        job.error = message
        job.error_code = code
        job.error_message = message
        job.finished_at = _utcnow()
        log.warning("Job %s failed: %s", job.id, message)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
