# main_server/app/adapters/generation/dto.py
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mood_back.main_server.app.domain.jobs_domain import (
    AnalysisRequest,
    ClassicalProfile,
    EmotionRepresentation,
    ImageRequest,
    ImageResult,
    Job,
    JobKind,
    JobStatus,
    MusicMotif,
    MusicRequest,
    MusicResult,
    MusicSection,
    MusicStructure,
    SubmitReceipt,
)

"""
    External contract of the generation services, so it lives in the adapter.
    Bodies are camelCase on the wire; every status payload is validated here
    before it becomes a domain Job.
"""


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = str(v)
    return v if v.strip() else None


# -------------------------
# submission
# -------------------------
class SubmitResponseDTO(_WireModel):
    job_id: str = Field(alias="jobId", min_length=1)
    status: Literal["queued", "running", "succeeded", "failed"] = "queued"
    message: str = ""

    def to_domain(self) -> SubmitReceipt:
        return SubmitReceipt(job_id=self.job_id, status=JobStatus(self.status), message=self.message)


class ErrorBodyDTO(_WireModel):
    error: Optional[str] = None
    message: Optional[str] = None

    def best_message(self) -> Optional[str]:
        return _blank_to_none(self.message) or _blank_to_none(self.error)


# -------------------------
# inputs
# -------------------------
class OnboardingDTO(_WireModel):
    emotional_profile: Optional[str] = Field(default=None, alias="emotionalProfile")


class AnalysisInputDTO(_WireModel):
    mood: str
    duration: int
    free_text: Optional[str] = Field(default=None, alias="freeText")
    onboarding_data: Optional[OnboardingDTO] = Field(default=None, alias="onboardingData")
    timestamp: Optional[datetime] = None

    @classmethod
    def from_domain(cls, req: AnalysisRequest) -> "AnalysisInputDTO":
        return cls(
            mood=req.mood,
            duration=req.duration,
            free_text=req.free_text,
            onboarding_data=OnboardingDTO(emotional_profile=req.onboarding_summary)
            if req.onboarding_summary
            else None,
            timestamp=req.timestamp,
        )

    def to_domain(self) -> AnalysisRequest:
        return AnalysisRequest(
            mood=self.mood,
            duration=self.duration,
            free_text=self.free_text,
            onboarding_summary=self.onboarding_data.emotional_profile if self.onboarding_data else None,
            timestamp=self.timestamp,
        )


class ImageInputDTO(_WireModel):
    mood: str
    duration: int
    motif_tags: List[str] = Field(default_factory=list, alias="motifTags")
    style_preset: Optional[str] = Field(default=None, alias="stylePreset")
    seed: Optional[int] = None
    valence: Optional[float] = None
    arousal: Optional[float] = None
    focus: Optional[float] = None
    confidence: Optional[float] = None

    @classmethod
    def from_domain(cls, req: ImageRequest) -> "ImageInputDTO":
        return cls(
            mood=req.mood,
            duration=req.duration,
            motif_tags=list(req.motif_tags),
            style_preset=req.style_preset,
            seed=req.seed,
            valence=req.valence,
            arousal=req.arousal,
            focus=req.focus,
            confidence=req.confidence,
        )

    def to_domain(self) -> ImageRequest:
        return ImageRequest(
            mood=self.mood,
            duration=self.duration,
            motif_tags=tuple(self.motif_tags),
            style_preset=self.style_preset,
            seed=self.seed,
            valence=self.valence,
            arousal=self.arousal,
            focus=self.focus,
            confidence=self.confidence,
        )


class MusicInputDTO(_WireModel):
    valence: float
    arousal: float
    focus: float
    motif_tags: List[str] = Field(default_factory=list)
    confidence: float = 0.5
    duration: Optional[int] = None
    seed: Optional[int] = None

    @classmethod
    def from_domain(cls, req: MusicRequest) -> "MusicInputDTO":
        return cls(
            valence=req.valence,
            arousal=req.arousal,
            focus=req.focus,
            motif_tags=list(req.motif_tags),
            confidence=req.confidence,
            duration=req.duration,
            seed=req.seed,
        )

    def to_domain(self) -> MusicRequest:
        return MusicRequest(
            valence=self.valence,
            arousal=self.arousal,
            focus=self.focus,
            motif_tags=tuple(self.motif_tags),
            confidence=self.confidence,
            duration=self.duration,
            seed=self.seed,
        )


def request_body(dto: BaseModel) -> Dict[str, Any]:
    return dto.model_dump(mode="json", by_alias=True, exclude_none=True)


# -------------------------
# results
# -------------------------
class ClassicalProfileDTO(_WireModel):
    tempo: Optional[str] = None
    dynamics: Optional[str] = None
    harmony: Optional[str] = None


class RepresentationDTO(_WireModel):
    valence: float = Field(ge=-1.0, le=1.0)
    arousal: float = Field(ge=0.0, le=1.0)
    focus: float = Field(ge=0.0, le=1.0)
    motif_tags: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    classical_profile: Optional[ClassicalProfileDTO] = None
    reasoning: Optional[str] = None

    def to_domain(self) -> EmotionRepresentation:
        profile = None
        if self.classical_profile is not None:
            profile = ClassicalProfile(**self.classical_profile.model_dump())
        return EmotionRepresentation(
            valence=self.valence,
            arousal=self.arousal,
            focus=self.focus,
            motif_tags=tuple(self.motif_tags),
            confidence=self.confidence,
            classical_profile=profile,
            reasoning=_blank_to_none(self.reasoning),
        )


class MusicMotifDTO(_WireModel):
    degrees: List[int]
    rhythm: List[float]


class MelodyDTO(_WireModel):
    motifs: List[MusicMotifDTO] = Field(default_factory=list)


class MusicSectionDTO(_WireModel):
    name: str
    measures: int = Field(ge=1)
    chord_progression: List[str] = Field(default_factory=list, alias="chordProgression")
    melody: MelodyDTO = Field(default_factory=MelodyDTO)
    dynamics: str = "mf"
    texture: str = "simple"


class MusicStructureDTO(_WireModel):
    key: str
    tempo: int = Field(ge=20, le=300)
    time_signature: str = Field(alias="timeSignature")
    form: str
    sections: List[MusicSectionDTO] = Field(default_factory=list)
    instrumentation: str = "piano"
    character: str = ""
    reasoning: Optional[str] = None

    def to_domain(self) -> MusicStructure:
        return MusicStructure(
            key=self.key,
            tempo=self.tempo,
            time_signature=self.time_signature,
            form=self.form,
            sections=tuple(
                MusicSection(
                    name=s.name,
                    measures=s.measures,
                    chord_progression=tuple(s.chord_progression),
                    motifs=tuple(
                        MusicMotif(degrees=tuple(m.degrees), rhythm=tuple(m.rhythm))
                        for m in s.melody.motifs
                    ),
                    dynamics=s.dynamics,
                    texture=s.texture,
                )
                for s in self.sections
            ),
            instrumentation=self.instrumentation,
            character=self.character,
            reasoning=_blank_to_none(self.reasoning),
        )


# -------------------------
# job resources
# -------------------------
class JobResourceDTO(_WireModel, ABC):
    id: str = Field(min_length=1)
    status: Literal["queued", "running", "succeeded", "failed"]
    created_at: datetime = Field(alias="createdAt")
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    finished_at: Optional[datetime] = Field(default=None, alias="finishedAt")
    error: Optional[str] = None
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    retry_count: int = Field(default=0, alias="retryCount")
    max_retries: int = Field(default=0, alias="maxRetries")
    provider: str = "unknown"
    model: Optional[str] = None

    @abstractmethod
    def has_result(self) -> bool:
        ...

    def has_error(self) -> bool:
        return any(_blank_to_none(v) for v in (self.error, self.error_code, self.error_message))

    @model_validator(mode="after")
    def _check_result_error_exclusive(self):
        if self.status in ("queued", "running") and (self.has_result() or self.has_error()):
            raise ValueError(f"{self.status} job must not carry a result or error")
        if self.status == "succeeded":
            if not self.has_result():
                raise ValueError("succeeded job without result")
            if self.has_error():
                raise ValueError("succeeded job carries an error")
        if self.status == "failed" and self.has_result():
            raise ValueError("failed job carries a result")
        return self

    def _job(self, kind: JobKind, *, input, result) -> Job:
        failed = self.status == "failed"
        return Job(
            id=self.id,
            kind=kind,
            status=JobStatus(self.status),
            created_at=self.created_at,
            input=input,
            result=result,
            started_at=self.started_at,
            finished_at=self.finished_at,
            error=_blank_to_none(self.error) if failed else None,
            error_code=_blank_to_none(self.error_code) if failed else None,
            error_message=_blank_to_none(self.error_message) if failed else None,
            retry_count=self.retry_count,
            max_retries=self.max_retries,
            provider=self.provider,
            model=self.model or "unknown",
        )


class AnalysisJobDTO(JobResourceDTO):
    input: Optional[AnalysisInputDTO] = None
    result: Optional[RepresentationDTO] = None

    def has_result(self) -> bool:
        return self.result is not None

    def to_domain(self) -> Job[AnalysisRequest, EmotionRepresentation]:
        return self._job(
            JobKind.ANALYSIS,
            input=self.input.to_domain() if self.input else None,
            result=self.result.to_domain() if self.result else None,
        )


class ImageJobDTO(JobResourceDTO):
    input: Optional[ImageInputDTO] = None
    result_url: Optional[str] = Field(default=None, alias="resultUrl")
    prompt: Optional[str] = None
    negative_prompt: Optional[str] = Field(default=None, alias="negativePrompt")

    def has_result(self) -> bool:
        return bool(_blank_to_none(self.result_url))

    def to_domain(self) -> Job[ImageRequest, ImageResult]:
        result = None
        if self.has_result():
            result = ImageResult(
                result_url=self.result_url,
                prompt=self.prompt or "",
                negative_prompt=self.negative_prompt or "",
                style_preset=self.input.style_preset if self.input else None,
                seed=self.input.seed if self.input else None,
            )
        return self._job(
            JobKind.IMAGE,
            input=self.input.to_domain() if self.input else None,
            result=result,
        )


class MusicJobDTO(JobResourceDTO):
    input: Optional[MusicInputDTO] = None
    result: Optional[MusicStructureDTO] = None
    midi_data: Optional[str] = Field(default=None, alias="midiData")

    def has_result(self) -> bool:
        return self.result is not None

    def to_domain(self) -> Job[MusicRequest, MusicResult]:
        result = None
        if self.result is not None:
            result = MusicResult(structure=self.result.to_domain(), midi_data=self.midi_data)
        return self._job(
            JobKind.MUSIC,
            input=self.input.to_domain() if self.input else None,
            result=result,
        )
