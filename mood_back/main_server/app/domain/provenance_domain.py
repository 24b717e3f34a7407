# main_server/app/domain/provenance_domain.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from mood_back.main_server.app.domain.jobs_domain import EmotionRepresentation, MusicStructure

REDACTED_FREE_TEXT = "[user input - redacted for privacy]"
REDACTED_ONBOARDING = "[onboarding data - summary only]"

# Stage names used in the errors list
STAGE_ANALYSIS = "analysis"
STAGE_IMAGE = "image-generation"
STAGE_MUSIC = "music-generation"
STAGE_ALBUM = "album"


# -------------------------
# Stage payloads
# -------------------------
@dataclass(frozen=True)
class SanitizedInput:
    """
    What the log is allowed to keep from a session: mood, duration, timestamp.
    Free text and onboarding answers are reduced to a marker saying they existed.
    """

    timestamp: datetime
    mood: Optional[str] = None
    duration: Optional[int] = None
    free_text: Optional[str] = None
    onboarding: Optional[str] = None


@dataclass(frozen=True)
class AnalysisStage:
    representation: EmotionRepresentation
    reasoning: str
    duration: float
    provider: str
    model: str
    timestamp: datetime


@dataclass(frozen=True)
class ImageStage:
    prompt: str
    negative_prompt: str
    style_preset: str
    reasoning: str
    job_id: str
    provider: str
    model: str
    result_url: str
    duration: float
    retry_count: int
    timestamp: datetime
    seed: Optional[int] = None


@dataclass(frozen=True)
class MusicStage:
    structure: MusicStructure
    reasoning: str
    job_id: str
    provider: str
    model: str
    duration: float
    retry_count: int
    timestamp: datetime


@dataclass(frozen=True)
class AlbumStage:
    album_id: str
    title: str
    timestamp: datetime


@dataclass(frozen=True)
class StageError:
    stage: str
    error: str
    timestamp: datetime


@dataclass(frozen=True)
class ProvenanceRecord:
    id: str
    session_id: str
    created_at: datetime
    input: SanitizedInput
    analysis: Optional[AnalysisStage] = None
    image_generation: Optional[ImageStage] = None
    music_generation: Optional[MusicStage] = None
    album: Optional[AlbumStage] = None
    total_duration: float = 0.0
    success: bool = False
    errors: tuple[StageError, ...] = ()


@dataclass(frozen=True)
class ProvenanceSummary:
    id: str
    session_id: str
    created_at: datetime
    success: bool
    total_duration: float
    album_id: Optional[str] = None


UPDATABLE_FIELDS = frozenset(
    {"analysis", "image_generation", "music_generation", "album", "success"}
)


def sanitize_input(
    *,
    timestamp: datetime,
    mood: Optional[str] = None,
    duration: Optional[int] = None,
    free_text: Optional[str] = None,
    onboarding: Optional[object] = None,
) -> SanitizedInput:
    return SanitizedInput(
        timestamp=timestamp,
        mood=mood,
        duration=duration,
        free_text=REDACTED_FREE_TEXT if free_text else None,
        onboarding=REDACTED_ONBOARDING if onboarding else None,
    )


def stage_durations_total(record: ProvenanceRecord) -> float:
    stages = (record.analysis, record.image_generation, record.music_generation)
    return sum(s.duration for s in stages if s is not None)


def merge_record(record: ProvenanceRecord, changes: dict) -> ProvenanceRecord:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

    merged = dataclasses.replace(record, **changes)
    return dataclasses.replace(merged, total_duration=stage_durations_total(merged))


def summarize(record: ProvenanceRecord) -> ProvenanceSummary:
    return ProvenanceSummary(
        id=record.id,
        session_id=record.session_id,
        created_at=record.created_at,
        success=record.success,
        total_duration=record.total_duration,
        album_id=record.album.album_id if record.album else None,
    )


# -------------------------
# Commands
# -------------------------
Records = tuple[ProvenanceRecord, ...]


@dataclass(frozen=True)
class CreateRecord:
    record: ProvenanceRecord


@dataclass(frozen=True)
class UpdateRecord:
    log_id: str
    changes: dict


@dataclass(frozen=True)
class AppendError:
    log_id: str
    error: StageError


@dataclass(frozen=True)
class DeleteRecord:
    log_id: str


@dataclass(frozen=True)
class ClearRecords:
    pass


@dataclass(frozen=True)
class PurgeExpired:
    now: datetime
    retention: timedelta


ProvenanceCommand = Union[CreateRecord, UpdateRecord, AppendError, DeleteRecord, ClearRecords, PurgeExpired]


def _replace_one(records: Records, log_id: str, fn) -> Records:
    out = []
    found = False
    for r in records:
        if r.id == log_id:
            out.append(fn(r))
            found = True
        else:
            out.append(r)
    if not found:
        raise KeyError(log_id)
    return tuple(out)


def apply_command(records: Records, command: ProvenanceCommand) -> Records:
    """
    Pure function: returns the collection that results from applying command.
    Raises KeyError when the command targets a record that is not present.
    """
    if isinstance(command, CreateRecord):
        if any(r.id == command.record.id for r in records):
            raise ValueError(f"Provenance log already exists: {command.record.id}")
        return records + (command.record,)

    if isinstance(command, UpdateRecord):
        return _replace_one(records, command.log_id, lambda r: merge_record(r, command.changes))

    if isinstance(command, AppendError):
        return _replace_one(
            records,
            command.log_id,
            lambda r: dataclasses.replace(r, errors=r.errors + (command.error,)),
        )

    if isinstance(command, DeleteRecord):
        return tuple(r for r in records if r.id != command.log_id)

    if isinstance(command, ClearRecords):
        return ()

    if isinstance(command, PurgeExpired):
        cutoff = command.now - command.retention
        return tuple(r for r in records if r.created_at >= cutoff)

    raise TypeError(f"Unknown provenance command: {command!r}")
