from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from mood_back.main_server.app.domain.errors_domain import JobNotFoundError, TransportError
from mood_back.main_server.app.domain.jobs_domain import (
    EmotionRepresentation,
    ImageResult,
    Job,
    JobKind,
    JobStatus,
    MusicMotif,
    MusicResult,
    MusicSection,
    MusicStructure,
    SubmitReceipt,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def representation(**overrides: Any) -> EmotionRepresentation:
    values = dict(
        valence=0.6,
        arousal=0.2,
        focus=0.63,
        motif_tags=("stillness", "water surface", "lull", "legato"),
        confidence=0.85,
    )
    values.update(overrides)
    return EmotionRepresentation(**values)


def image_result(**overrides: Any) -> ImageResult:
    values = dict(
        result_url="https://img.example/cover.png",
        prompt="calm, peaceful, abstract oil painting",
        negative_prompt="photorealistic, text, watermark",
        style_preset="abstract-oil",
        seed=7,
    )
    values.update(overrides)
    return ImageResult(**values)


def music_result() -> MusicResult:
    section = MusicSection(
        name="A",
        measures=8,
        chord_progression=("I", "IV", "V", "I"),
        motifs=(MusicMotif(degrees=(1, 3, 5, 3, 1), rhythm=(1, 1, 1, 1, 2)),),
        dynamics="p",
    )
    structure = MusicStructure(
        key="C major",
        tempo=76,
        time_signature="4/4",
        form="ABA",
        sections=(section, section),
        character="uplifting and calm",
    )
    return MusicResult(structure=structure, midi_data="TVRoZA==")


def make_job(
    kind: JobKind,
    job_id: str,
    status: JobStatus,
    *,
    input: Any = None,
    result: Any = None,
    error_code: Optional[str] = None,
    error_message: Optional[str] = None,
    retry_count: int = 0,
    provider: str = "fake",
) -> Job:
    failed = status == JobStatus.FAILED
    return Job(
        id=job_id,
        kind=kind,
        status=status,
        created_at=T0,
        input=input,
        result=result,
        error=error_message if failed else None,
        error_code=error_code if failed else None,
        error_message=error_message if failed else None,
        retry_count=retry_count,
        provider=provider,
        model="fake-model",
    )


# Script factories: (kind, job_id, request) -> statuses returned by successive polls
Script = Callable[[JobKind, str, Any], List[Job]]


def succeeds(result: Any, *, running_polls: int = 1) -> Script:
    def script(kind: JobKind, job_id: str, request: Any) -> List[Job]:
        pending = [make_job(kind, job_id, JobStatus.QUEUED, input=request)]
        pending += [make_job(kind, job_id, JobStatus.RUNNING, input=request)] * running_polls
        return pending + [make_job(kind, job_id, JobStatus.SUCCEEDED, input=request, result=result)]
    return script


def fails(error_code: Optional[str], error_message: Optional[str]) -> Script:
    def script(kind: JobKind, job_id: str, request: Any) -> List[Job]:
        return [
            make_job(kind, job_id, JobStatus.RUNNING, input=request),
            make_job(
                kind, job_id, JobStatus.FAILED,
                input=request, error_code=error_code, error_message=error_message,
            ),
        ]
    return script


def never_finishes() -> Script:
    def script(kind: JobKind, job_id: str, request: Any) -> List[Job]:
        return [make_job(kind, job_id, JobStatus.RUNNING, input=request)]
    return script


class ScriptedJobApi:
    """
    JobApi double. Every submitted job walks through its script one status
    per get_status call and then stays on the last one.
    """

    def __init__(
        self,
        kind: JobKind,
        script: Optional[Script] = None,
        *,
        submit_error: Optional[Exception] = None,
    ) -> None:
        self.kind = kind
        self._script = script
        self._submit_error = submit_error
        self._jobs: Dict[str, List[Job]] = {}
        self.submitted: List[Any] = []
        self.status_calls: List[str] = []

    def seed(self, job: Job) -> None:
        """Register an existing job that keeps returning the same status."""
        self._jobs[job.id] = [job]

    async def submit(self, request: Any) -> SubmitReceipt:
        if self._submit_error is not None:
            raise self._submit_error
        self.submitted.append(request)
        job_id = f"{self.kind.value}-{len(self.submitted)}"
        self._jobs[job_id] = list(self._script(self.kind, job_id, request))
        return SubmitReceipt(job_id=job_id)

    async def get_status(self, job_id: str) -> Job:
        self.status_calls.append(job_id)
        if job_id not in self._jobs:
            raise JobNotFoundError(job_id)
        queue = self._jobs[job_id]
        return queue.pop(0) if len(queue) > 1 else queue[0]


def unreachable(kind: JobKind) -> ScriptedJobApi:
    return ScriptedJobApi(kind, submit_error=TransportError("connection refused", status_code=503))


async def no_sleep(seconds: float) -> None:
    return None


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeAlbumStore:
    def __init__(self, *, error: Optional[Exception] = None) -> None:
        self.drafts = []
        self._error = error

    async def assemble(self, draft) -> str:
        if self._error is not None:
            raise self._error
        self.drafts.append(draft)
        return f"album-{len(self.drafts)}"


class FakeAsyncRedis:
    """The slice of redis.asyncio.Redis the provenance store uses."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for k in keys:
            if self.data.pop(k, None) is not None:
                removed += 1
        return removed
