# main_server/app/application/usecases/run_pipeline_usecase.py
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from mood_back.main_server.app.application.job_status_client import JobStatusClient
from mood_back.main_server.app.application.ports.album_port import AlbumAssemblerPort
from mood_back.main_server.app.application.provenance_log import ProvenanceLog
from mood_back.main_server.app.domain.errors_domain import (
    JobFailedError,
    PipelineFailedError,
    PollCancelledError,
    PollTimeoutError,
    TransportError,
)
from mood_back.main_server.app.domain.jobs_domain import (
    AnalysisRequest,
    EmotionRepresentation,
    ImageRequest,
    ImageResult,
    Job,
    MusicRequest,
)
from mood_back.main_server.app.domain.pipeline_domain import (
    AlbumDraft,
    MusicArtifact,
    PipelineEvent,
    PipelineOutcome,
    PipelineState,
    SessionInput,
)
from mood_back.main_server.app.domain.provenance_domain import (
    STAGE_ALBUM,
    STAGE_ANALYSIS,
    STAGE_IMAGE,
    STAGE_MUSIC,
    AlbumStage,
    AnalysisStage,
    ImageStage,
    MusicStage,
)
from mood_back.main_server.app.domain.reasoning_domain import (
    album_title,
    analysis_reasoning,
    image_reasoning,
    music_reasoning,
)

log = logging.getLogger(__name__)

OnEvent = Callable[[PipelineEvent], None]

# errors a stage absorbs; anything else propagates untouched
STAGE_ERRORS = (TransportError, JobFailedError, PollTimeoutError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000.0, 1)


def _failure_details(e: Exception) -> tuple[str, Optional[str]]:
    """User-visible message and remote error code for a stage failure."""
    if isinstance(e, JobFailedError):
        return e.error_message, e.error_code
    return str(e) or "Generation failed", None


def _require_success(job: Job) -> Job:
    if not job.succeeded:
        raise JobFailedError(job)
    return job


class _Run:
    """Per-run state and event emission."""

    def __init__(self, log_id: str, on_event: Optional[OnEvent]) -> None:
        self.log_id = log_id
        self.state = PipelineState.IDLE
        self._on_event = on_event

    def _emit(self, event: PipelineEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def transition(self, state: PipelineState) -> None:
        log.info("Pipeline %s: %s -> %s", self.log_id, self.state.value, state.value)
        self.state = state
        self._emit(PipelineEvent(kind="state", state=state, log_id=self.log_id))

    def job_update(self, job: Job) -> None:
        self._emit(
            PipelineEvent(
                kind="job_status",
                state=self.state,
                log_id=self.log_id,
                job_kind=job.kind,
                job_id=job.id,
                job_status=job.status,
            )
        )

    def stage_error(self, stage: str, message: str) -> None:
        self._emit(
            PipelineEvent(kind="stage_error", state=self.state, log_id=self.log_id, stage=stage, message=message)
        )


class PipelineOrchestrator:
    """
    Analysis -> (image || music) -> assembly for one mood session.

    Analysis failure degrades to the session's own representation (or a
    neutral one). Image failure is fatal. Music failure only drops the music
    from the album. Every stage outcome is written to the provenance log
    before the run moves on.
    """

    def __init__(
        self,
        *,
        analysis: JobStatusClient,
        image: JobStatusClient,
        music: JobStatusClient,
        provenance: ProvenanceLog,
        albums: AlbumAssemblerPort,
        default_style_preset: str = "abstract-oil",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._analysis = analysis
        self._image = image
        self._music = music
        self._provenance = provenance
        self._albums = albums
        self._default_style_preset = default_style_preset
        self._clock = clock

    async def run(
        self,
        session: SessionInput,
        *,
        on_event: Optional[OnEvent] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> PipelineOutcome:
        log_id = await self._provenance.create(
            session.session_id,
            timestamp=session.timestamp,
            mood=session.mood,
            duration=session.duration,
            free_text=session.free_text,
            onboarding=session.onboarding_summary,
        )
        run = _Run(log_id, on_event)

        try:
            return await self._run_stages(run, session, cancel)
        except PollCancelledError:
            run.transition(PipelineState.CANCELLED)
            raise
        except PipelineFailedError as e:
            log.error("Pipeline %s failed at %s: %s", log_id, e.stage, e.message)
            run.transition(PipelineState.FAILED)
            raise
        except Exception:
            log.exception("Pipeline %s aborted", log_id)
            run.transition(PipelineState.FAILED)
            raise

    async def _run_stages(
        self,
        run: _Run,
        session: SessionInput,
        cancel: Optional[asyncio.Event],
    ) -> PipelineOutcome:
        rep, degraded = await self._analyze(run, session, cancel)

        run.transition(PipelineState.GENERATING)
        style_preset = session.style_preset or self._default_style_preset
        image_res, music_res = await asyncio.gather(
            self._generate_image(run, session, rep, style_preset, degraded, cancel),
            self._generate_music(run, session, rep, cancel),
            return_exceptions=True,
        )
        for res in (image_res, music_res):
            if isinstance(res, PollCancelledError):
                raise res
        for res in (image_res, music_res):
            if isinstance(res, BaseException):
                raise res

        run.transition(PipelineState.ASSEMBLING)
        album_id = await self._assemble(run, session, rep, style_preset, image_res, music_res)

        run.transition(PipelineState.COMPLETE)
        return PipelineOutcome(
            log_id=run.log_id,
            state=PipelineState.COMPLETE,
            album_id=album_id,
            degraded=degraded,
            music_available=music_res is not None,
            representation=rep,
        )

    async def _record_error(self, run: _Run, stage: str, message: str) -> None:
        await self._provenance.append_error(run.log_id, stage, message)
        run.stage_error(stage, message)

    # -----------------------------
    # stages
    # -----------------------------
    async def _analyze(
        self,
        run: _Run,
        session: SessionInput,
        cancel: Optional[asyncio.Event],
    ) -> tuple[EmotionRepresentation, bool]:
        run.transition(PipelineState.ANALYSIS_RUNNING)
        request = AnalysisRequest(
            mood=session.mood,
            duration=session.duration,
            free_text=session.free_text,
            onboarding_summary=session.onboarding_summary,
            timestamp=session.timestamp,
        )
        started = time.monotonic()
        try:
            job = _require_success(await self._analysis.run(request, run.job_update, cancel=cancel))
        except STAGE_ERRORS as e:
            message, _ = _failure_details(e)
            log.warning("Analysis unavailable for %s, continuing with defaults: %s", run.log_id, message)
            await self._record_error(run, STAGE_ANALYSIS, message)
            return session.representation or EmotionRepresentation.neutral(), True

        rep: EmotionRepresentation = job.result
        await self._provenance.update(
            run.log_id,
            analysis=AnalysisStage(
                representation=rep,
                reasoning=analysis_reasoning(rep, mood=session.mood, duration=session.duration),
                duration=_elapsed_ms(started),
                provider=job.provider,
                model=job.model,
                timestamp=self._clock(),
            ),
        )
        return rep, False

    async def _generate_image(
        self,
        run: _Run,
        session: SessionInput,
        rep: EmotionRepresentation,
        style_preset: str,
        degraded: bool,
        cancel: Optional[asyncio.Event],
    ) -> ImageResult:
        request = ImageRequest(
            mood=session.mood,
            duration=session.duration,
            motif_tags=rep.motif_tags,
            style_preset=style_preset,
            seed=session.seed,
            valence=rep.valence,
            arousal=rep.arousal,
            focus=rep.focus,
            confidence=rep.confidence,
        )
        started = time.monotonic()
        try:
            job = _require_success(await self._image.run(request, run.job_update, cancel=cancel))
        except STAGE_ERRORS as e:
            message, code = _failure_details(e)
            await self._record_error(run, STAGE_IMAGE, message)
            raise PipelineFailedError(stage=STAGE_IMAGE, message=message, error_code=code, log_id=run.log_id) from e

        result: ImageResult = job.result
        await self._provenance.update(
            run.log_id,
            image_generation=ImageStage(
                prompt=result.prompt,
                negative_prompt=result.negative_prompt,
                style_preset=result.style_preset or style_preset,
                seed=result.seed if result.seed is not None else session.seed,
                reasoning=image_reasoning(result, rep, mood=session.mood, style_preset=style_preset, degraded=degraded),
                job_id=job.id,
                provider=job.provider,
                model=job.model,
                result_url=result.result_url,
                duration=_elapsed_ms(started),
                retry_count=job.retry_count,
                timestamp=self._clock(),
            ),
        )
        return result

    async def _generate_music(
        self,
        run: _Run,
        session: SessionInput,
        rep: EmotionRepresentation,
        cancel: Optional[asyncio.Event],
    ) -> Optional[MusicArtifact]:
        request = MusicRequest(
            valence=rep.valence,
            arousal=rep.arousal,
            focus=rep.focus,
            motif_tags=rep.motif_tags,
            confidence=rep.confidence,
            duration=session.duration,
            seed=session.seed,
        )
        started = time.monotonic()
        try:
            job = _require_success(await self._music.run(request, run.job_update, cancel=cancel))
        except STAGE_ERRORS as e:
            message, _ = _failure_details(e)
            log.warning("Music unavailable for %s, album continues without it: %s", run.log_id, message)
            await self._record_error(run, STAGE_MUSIC, message)
            return None

        structure = job.result.structure
        await self._provenance.update(
            run.log_id,
            music_generation=MusicStage(
                structure=structure,
                reasoning=music_reasoning(structure, rep),
                job_id=job.id,
                provider=job.provider,
                model=job.model,
                duration=_elapsed_ms(started),
                retry_count=job.retry_count,
                timestamp=self._clock(),
            ),
        )
        return MusicArtifact(structure=structure, midi_data=job.result.midi_data, provider=job.provider)

    async def _assemble(
        self,
        run: _Run,
        session: SessionInput,
        rep: EmotionRepresentation,
        style_preset: str,
        image: ImageResult,
        music: Optional[MusicArtifact],
    ) -> str:
        title = album_title(title=session.title, mood=session.mood)
        draft = AlbumDraft(
            title=title,
            mood=session.mood,
            duration=session.duration,
            image_url=image.result_url,
            representation=rep,
            style_preset=style_preset,
            provenance_log_id=run.log_id,
            music=music,
        )
        try:
            album_id = await self._albums.assemble(draft)
        except Exception as e:
            message = str(e) or "Album assembly failed"
            await self._record_error(run, STAGE_ALBUM, message)
            raise PipelineFailedError(stage=STAGE_ALBUM, message=message, log_id=run.log_id) from e

        await self._provenance.update(
            run.log_id,
            album=AlbumStage(album_id=album_id, title=title, timestamp=self._clock()),
            success=True,
        )
        log.info("Pipeline %s assembled album %s", run.log_id, album_id)
        return album_id
