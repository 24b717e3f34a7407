# main_server/app/api/v1/routers/pipeline.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from mood_back.main_server.app.api.v1.deps import get_orchestrator
from mood_back.main_server.app.application.usecases.run_pipeline_usecase import PipelineOrchestrator
from mood_back.main_server.app.domain.errors_domain import PipelineFailedError
from mood_back.main_server.app.domain.jobs_domain import EmotionRepresentation
from mood_back.main_server.app.domain.pipeline_domain import PipelineState, SessionInput

router = APIRouter(prefix="/v1/pipeline", tags=["pipeline"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RepresentationIn(_CamelModel):
    valence: float = Field(ge=-1.0, le=1.0)
    arousal: float = Field(ge=0.0, le=1.0)
    focus: float = Field(ge=0.0, le=1.0)
    motif_tags: List[str] = Field(default_factory=list, alias="motifTags")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class RunPipelineRequest(_CamelModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    mood: str = Field(min_length=1)
    duration: int = Field(ge=1)
    timestamp: Optional[datetime] = None
    free_text: Optional[str] = Field(default=None, alias="freeText")
    onboarding_summary: Optional[str] = Field(default=None, alias="onboardingSummary")
    representation: Optional[RepresentationIn] = None
    style_preset: Optional[str] = Field(default=None, alias="stylePreset")
    seed: Optional[int] = None
    title: Optional[str] = None

    def to_session(self) -> SessionInput:
        rep = None
        if self.representation is not None:
            r = self.representation
            rep = EmotionRepresentation(
                valence=r.valence,
                arousal=r.arousal,
                focus=r.focus,
                motif_tags=tuple(r.motif_tags),
                confidence=r.confidence,
            )
        return SessionInput(
            session_id=self.session_id or f"session_{uuid.uuid4().hex[:12]}",
            mood=self.mood,
            duration=self.duration,
            timestamp=self.timestamp or datetime.now(timezone.utc),
            free_text=self.free_text,
            onboarding_summary=self.onboarding_summary,
            representation=rep,
            style_preset=self.style_preset,
            seed=self.seed,
            title=self.title,
        )


class RunPipelineResponse(_CamelModel):
    log_id: str = Field(alias="logId")
    album_id: Optional[str] = Field(default=None, alias="albumId")
    state: PipelineState
    degraded: bool
    music_available: bool = Field(alias="musicAvailable")


"""
    Runs the whole pipeline inside the request and answers with the outcome.
    A fatal stage answers 502 with the stage and the remote error verbatim.
"""
@router.post("/runs", response_model=RunPipelineResponse, status_code=status.HTTP_201_CREATED)
async def run_pipeline(
    body: RunPipelineRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    try:
        outcome = await orchestrator.run(body.to_session())
    except PipelineFailedError as e:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "stage": e.stage,
                "errorCode": e.error_code,
                "message": e.message,
                "logId": e.log_id,
            },
        )

    return RunPipelineResponse(
        log_id=outcome.log_id,
        album_id=outcome.album_id,
        state=outcome.state,
        degraded=outcome.degraded,
        music_available=outcome.music_available,
    )
