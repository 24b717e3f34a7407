# main_server/app/domain/jobs_domain.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar, Union


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class JobKind(str, Enum):
    ANALYSIS = "analysis"
    IMAGE = "image"
    MUSIC = "music"


# -------------------------
# Emotion representation
# -------------------------
@dataclass(frozen=True)
class ClassicalProfile:
    tempo: Optional[str] = None
    dynamics: Optional[str] = None
    harmony: Optional[str] = None


@dataclass(frozen=True)
class EmotionRepresentation:
    """
    Output of the analysis stage and the shared input of both generation stages.

    valence is in [-1, 1]; arousal, focus and confidence are in [0, 1].
    """

    valence: float
    arousal: float
    focus: float
    motif_tags: tuple[str, ...] = ()
    confidence: float = 0.5
    classical_profile: Optional[ClassicalProfile] = None
    reasoning: Optional[str] = None

    @classmethod
    def neutral(cls) -> "EmotionRepresentation":
        return cls(valence=0.0, arousal=0.5, focus=0.5, motif_tags=(), confidence=0.0)


# -------------------------
# Requests (input snapshots)
# -------------------------
@dataclass(frozen=True)
class AnalysisRequest:
    mood: str
    duration: int
    free_text: Optional[str] = None
    onboarding_summary: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class ImageRequest:
    mood: str
    duration: int
    motif_tags: tuple[str, ...] = ()
    style_preset: Optional[str] = None
    seed: Optional[int] = None
    valence: Optional[float] = None
    arousal: Optional[float] = None
    focus: Optional[float] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class MusicRequest:
    valence: float
    arousal: float
    focus: float
    motif_tags: tuple[str, ...] = ()
    confidence: float = 0.5
    duration: Optional[int] = None
    seed: Optional[int] = None


JobRequest = Union[AnalysisRequest, ImageRequest, MusicRequest]


# -------------------------
# Results
# -------------------------
@dataclass(frozen=True)
class ImageResult:
    result_url: str
    prompt: str
    negative_prompt: str = ""
    style_preset: Optional[str] = None
    seed: Optional[int] = None


@dataclass(frozen=True)
class MusicMotif:
    degrees: tuple[int, ...]
    rhythm: tuple[float, ...]


@dataclass(frozen=True)
class MusicSection:
    name: str
    measures: int
    chord_progression: tuple[str, ...] = ()
    motifs: tuple[MusicMotif, ...] = ()
    dynamics: str = "mf"
    texture: str = "simple"


@dataclass(frozen=True)
class MusicStructure:
    key: str
    tempo: int
    time_signature: str
    form: str
    sections: tuple[MusicSection, ...] = ()
    instrumentation: str = "piano"
    character: str = ""
    reasoning: Optional[str] = None


@dataclass(frozen=True)
class MusicResult:
    structure: MusicStructure
    midi_data: Optional[str] = None


JobResult = Union[EmotionRepresentation, ImageResult, MusicResult]

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")


# -------------------------
# Job
# -------------------------
@dataclass(frozen=True)
class Job(Generic[RequestT, ResultT]):
    """
    Client-side view of one remote computation.

    result and error fields are mutually exclusive, and both are absent while
    the job is queued or running.
    """

    id: str
    kind: JobKind
    status: JobStatus
    created_at: datetime
    input: Optional[RequestT] = None
    result: Optional[ResultT] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 0
    provider: str = "unknown"
    model: str = "unknown"

    def __post_init__(self) -> None:
        has_error = any(v is not None for v in (self.error, self.error_code, self.error_message))
        if self.result is not None and has_error:
            raise ValueError(f"Job {self.id} carries both a result and an error")
        if not self.status.is_terminal and (self.result is not None or has_error):
            raise ValueError(f"Job {self.id} is {self.status.value} but carries a result or error")
        if self.status == JobStatus.SUCCEEDED and self.result is None:
            raise ValueError(f"Job {self.id} succeeded without a result")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.SUCCEEDED

    def failure_message(self, default: str = "Generation failed") -> str:
        """Remote error text verbatim when available, else a generic message."""
        return self.error_message or self.error or default


@dataclass(frozen=True)
class SubmitReceipt:
    job_id: str
    status: JobStatus = JobStatus.QUEUED
    message: str = ""
