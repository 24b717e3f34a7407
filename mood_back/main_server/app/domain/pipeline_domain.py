# main_server/app/domain/pipeline_domain.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from mood_back.main_server.app.domain.jobs_domain import (
    EmotionRepresentation,
    JobKind,
    JobStatus,
    MusicStructure,
)


class PipelineState(str, Enum):
    IDLE = "idle"
    ANALYSIS_RUNNING = "analysis_running"
    GENERATING = "generating"
    ASSEMBLING = "assembling"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.COMPLETE, PipelineState.FAILED, PipelineState.CANCELLED)


@dataclass(frozen=True)
class SessionInput:
    """What the session-capture UI hands to the pipeline."""

    session_id: str
    mood: str
    duration: int
    timestamp: datetime
    free_text: Optional[str] = None
    onboarding_summary: Optional[str] = None
    representation: Optional[EmotionRepresentation] = None
    style_preset: Optional[str] = None
    seed: Optional[int] = None
    title: Optional[str] = None

    @classmethod
    def now(cls, *, session_id: str, mood: str, duration: int, **kwargs: Any) -> "SessionInput":
        return cls(
            session_id=session_id,
            mood=mood,
            duration=duration,
            timestamp=datetime.now(timezone.utc),
            **kwargs,
        )


@dataclass(frozen=True)
class MusicArtifact:
    structure: MusicStructure
    midi_data: Optional[str]
    provider: str


@dataclass(frozen=True)
class AlbumDraft:
    """Album-assembly request consumed by the album store."""

    title: str
    mood: str
    duration: int
    image_url: str
    representation: EmotionRepresentation
    style_preset: str
    provenance_log_id: str
    music: Optional[MusicArtifact] = None


@dataclass(frozen=True)
class PipelineEvent:
    """
    Emitted to the presentation layer through the orchestrator's on_event hook.

    kind is one of "state", "job_status", "stage_error".
    """

    kind: str
    state: PipelineState
    log_id: str
    job_kind: Optional[JobKind] = None
    job_id: Optional[str] = None
    job_status: Optional[JobStatus] = None
    stage: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class PipelineOutcome:
    log_id: str
    state: PipelineState
    album_id: Optional[str] = None
    degraded: bool = False
    music_available: bool = False
    representation: Optional[EmotionRepresentation] = None
