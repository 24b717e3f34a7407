import asyncio

import pytest

from mood_back.main_server.app.adapters.provenance.memory_store import InMemoryProvenanceStore
from mood_back.main_server.app.application.job_status_client import JobStatusClient
from mood_back.main_server.app.application.provenance_log import ProvenanceLog
from mood_back.main_server.app.application.usecases.run_pipeline_usecase import PipelineOrchestrator
from mood_back.main_server.app.config import PollConfig
from mood_back.main_server.app.domain.errors_domain import PipelineFailedError, PollCancelledError
from mood_back.main_server.app.domain.jobs_domain import EmotionRepresentation, JobKind
from mood_back.main_server.app.domain.pipeline_domain import PipelineState, SessionInput
from mood_back.main_server.app.domain.provenance_domain import (
    STAGE_ALBUM,
    STAGE_ANALYSIS,
    STAGE_IMAGE,
    STAGE_MUSIC,
)
from mood_back.main_server.tests.doubles import (
    T0,
    FakeAlbumStore,
    ScriptedJobApi,
    fails,
    image_result,
    music_result,
    never_finishes,
    no_sleep,
    representation,
    succeeds,
    unreachable,
)

POLL = PollConfig(max_attempts=5, interval_ms=1)


def _session(**overrides) -> SessionInput:
    values = dict(session_id="session-1", mood="calm", duration=90, timestamp=T0, free_text="long week")
    values.update(overrides)
    return SessionInput(**values)


class Harness:
    def __init__(self, *, analysis=None, image=None, music=None, albums=None):
        self.analysis = analysis or ScriptedJobApi(JobKind.ANALYSIS, succeeds(representation()))
        self.image = image or ScriptedJobApi(JobKind.IMAGE, succeeds(image_result()))
        self.music = music or ScriptedJobApi(JobKind.MUSIC, succeeds(music_result()))
        self.albums = albums or FakeAlbumStore()
        self.events = []

    async def build(self) -> PipelineOrchestrator:
        self.provenance = await ProvenanceLog.open(InMemoryProvenanceStore())
        return PipelineOrchestrator(
            analysis=JobStatusClient(self.analysis, poll=POLL, sleep=no_sleep),
            image=JobStatusClient(self.image, poll=POLL, sleep=no_sleep),
            music=JobStatusClient(self.music, poll=POLL, sleep=no_sleep),
            provenance=self.provenance,
            albums=self.albums,
        )

    def states(self):
        return [e.state for e in self.events if e.kind == "state"]


@pytest.mark.asyncio
async def test_happy_path_records_every_stage_and_the_assigned_album_id():
    h = Harness()
    orchestrator = await h.build()

    outcome = await orchestrator.run(_session(), on_event=h.events.append)

    assert outcome.state == PipelineState.COMPLETE
    assert outcome.album_id == "album-1"
    assert outcome.degraded is False
    assert outcome.music_available is True
    assert h.states() == [
        PipelineState.ANALYSIS_RUNNING,
        PipelineState.GENERATING,
        PipelineState.ASSEMBLING,
        PipelineState.COMPLETE,
    ]

    record = h.provenance.get(outcome.log_id)
    assert record.success is True
    assert record.album.album_id == "album-1"
    assert record.analysis.representation == representation()
    assert record.image_generation.job_id == "image-1"
    assert record.image_generation.seed == 7
    assert record.music_generation.structure.key == "C major"
    assert record.errors == ()
    assert record.total_duration == pytest.approx(
        record.analysis.duration + record.image_generation.duration + record.music_generation.duration
    )

    draft = h.albums.drafts[0]
    assert draft.provenance_log_id == outcome.log_id
    assert draft.music is not None
    assert draft.image_url == "https://img.example/cover.png"


@pytest.mark.asyncio
async def test_free_text_reaches_analysis_but_not_the_log():
    h = Harness()
    orchestrator = await h.build()

    outcome = await orchestrator.run(_session(free_text="my private note"))

    assert h.analysis.submitted[0].free_text == "my private note"
    assert "my private note" not in h.provenance.export(outcome.log_id)


@pytest.mark.asyncio
async def test_both_generators_read_the_analysis_representation():
    rep = representation(valence=-0.4, arousal=0.6, motif_tags=("storm",))
    h = Harness(analysis=ScriptedJobApi(JobKind.ANALYSIS, succeeds(rep)))
    orchestrator = await h.build()

    await orchestrator.run(_session(style_preset="impressionist", seed=3))

    image_req = h.image.submitted[0]
    music_req = h.music.submitted[0]
    assert (image_req.valence, image_req.arousal, image_req.motif_tags) == (-0.4, 0.6, ("storm",))
    assert image_req.style_preset == "impressionist"
    assert image_req.seed == 3
    assert (music_req.valence, music_req.arousal, music_req.focus) == (rep.valence, rep.arousal, rep.focus)


@pytest.mark.asyncio
async def test_music_failure_still_completes_with_image_only():
    h = Harness(music=ScriptedJobApi(JobKind.MUSIC, fails("SYNTH_DOWN", "synth crashed")))
    orchestrator = await h.build()

    outcome = await orchestrator.run(_session(), on_event=h.events.append)

    assert outcome.state == PipelineState.COMPLETE
    assert outcome.music_available is False
    record = h.provenance.get(outcome.log_id)
    assert record.success is True
    assert record.image_generation is not None
    assert record.music_generation is None
    assert [(e.stage, e.error) for e in record.errors] == [(STAGE_MUSIC, "synth crashed")]
    assert h.albums.drafts[0].music is None
    assert any(e.kind == "stage_error" and e.stage == STAGE_MUSIC for e in h.events)


@pytest.mark.asyncio
async def test_music_poll_timeout_is_non_fatal():
    h = Harness(music=ScriptedJobApi(JobKind.MUSIC, never_finishes()))
    orchestrator = await h.build()

    outcome = await orchestrator.run(_session())

    assert outcome.state == PipelineState.COMPLETE
    assert h.provenance.get(outcome.log_id).errors[0].stage == STAGE_MUSIC
    assert len(h.music.status_calls) == POLL.max_attempts


@pytest.mark.asyncio
async def test_image_failure_short_circuits_before_assembly():
    h = Harness(image=ScriptedJobApi(JobKind.IMAGE, fails("RATE_LIMIT", "Too many image requests")))
    orchestrator = await h.build()

    with pytest.raises(PipelineFailedError) as ei:
        await orchestrator.run(_session(), on_event=h.events.append)

    err = ei.value
    assert err.stage == STAGE_IMAGE
    assert err.error_code == "RATE_LIMIT"
    assert err.message == "Too many image requests"
    assert h.albums.drafts == []
    assert h.states()[-1] == PipelineState.FAILED

    record = h.provenance.get(err.log_id)
    assert record.success is False
    assert record.album is None
    assert record.errors[0].stage == STAGE_IMAGE
    # music branch still ran to completion
    assert record.music_generation is not None


@pytest.mark.asyncio
async def test_image_transport_failure_uses_generic_code():
    h = Harness(image=unreachable(JobKind.IMAGE))
    orchestrator = await h.build()

    with pytest.raises(PipelineFailedError) as ei:
        await orchestrator.run(_session())

    assert ei.value.error_code is None
    assert ei.value.message == "connection refused"


@pytest.mark.asyncio
async def test_analysis_failure_degrades_to_session_representation():
    own = EmotionRepresentation(valence=0.1, arousal=0.4, focus=0.5, motif_tags=("mist",), confidence=0.3)
    h = Harness(analysis=unreachable(JobKind.ANALYSIS))
    orchestrator = await h.build()

    outcome = await orchestrator.run(_session(representation=own))

    assert outcome.state == PipelineState.COMPLETE
    assert outcome.degraded is True
    assert outcome.representation == own
    assert h.image.submitted[0].motif_tags == ("mist",)
    record = h.provenance.get(outcome.log_id)
    assert record.analysis is None
    assert record.errors[0].stage == STAGE_ANALYSIS


@pytest.mark.asyncio
async def test_analysis_failure_without_session_representation_uses_neutral_defaults():
    h = Harness(analysis=ScriptedJobApi(JobKind.ANALYSIS, fails(None, "model overloaded")))
    orchestrator = await h.build()

    outcome = await orchestrator.run(_session())

    assert outcome.degraded is True
    assert outcome.representation == EmotionRepresentation.neutral()
    assert h.provenance.get(outcome.log_id).errors[0].error == "model overloaded"


@pytest.mark.asyncio
async def test_assembly_failure_is_logged_and_fatal():
    h = Harness(albums=FakeAlbumStore(error=RuntimeError("album store offline")))
    orchestrator = await h.build()

    with pytest.raises(PipelineFailedError) as ei:
        await orchestrator.run(_session())

    assert ei.value.stage == STAGE_ALBUM
    record = h.provenance.get(ei.value.log_id)
    assert record.success is False
    assert record.errors[-1].error == "album store offline"


@pytest.mark.asyncio
async def test_cancel_stops_polling_and_ends_cancelled():
    cancel = asyncio.Event()
    h = Harness(analysis=ScriptedJobApi(JobKind.ANALYSIS, never_finishes()))
    orchestrator = await h.build()

    def on_event(event):
        h.events.append(event)
        if event.kind == "job_status":
            cancel.set()

    with pytest.raises(PollCancelledError):
        await orchestrator.run(_session(), on_event=on_event, cancel=cancel)

    assert h.states()[-1] == PipelineState.CANCELLED
    assert len(h.analysis.status_calls) == 1
    assert h.image.submitted == []
    assert h.albums.drafts == []


@pytest.mark.asyncio
async def test_image_failure_is_fatal_even_when_music_also_fails():
    h = Harness(
        image=ScriptedJobApi(JobKind.IMAGE, fails("RATE_LIMIT", "Too many image requests")),
        music=ScriptedJobApi(JobKind.MUSIC, fails("SYNTH_DOWN", "synth crashed")),
    )
    orchestrator = await h.build()

    with pytest.raises(PipelineFailedError) as ei:
        await orchestrator.run(_session())

    assert ei.value.stage == STAGE_IMAGE
    record = h.provenance.get(ei.value.log_id)
    assert record.success is False
    assert record.album is None
    assert h.albums.drafts == []
    assert sorted(e.stage for e in record.errors) == sorted([STAGE_IMAGE, STAGE_MUSIC])


class FailingAfterCreateStore(InMemoryProvenanceStore):
    async def save_all(self, records):
        if self.save_count >= 1:
            raise ConnectionError("provenance store unreachable")
        await super().save_all(records)


@pytest.mark.asyncio
async def test_store_failure_mid_run_ends_failed():
    h = Harness()
    orchestrator = PipelineOrchestrator(
        analysis=JobStatusClient(h.analysis, poll=POLL, sleep=no_sleep),
        image=JobStatusClient(h.image, poll=POLL, sleep=no_sleep),
        music=JobStatusClient(h.music, poll=POLL, sleep=no_sleep),
        provenance=await ProvenanceLog.open(FailingAfterCreateStore()),
        albums=h.albums,
    )

    with pytest.raises(ConnectionError):
        await orchestrator.run(_session(), on_event=h.events.append)

    assert h.states()[-1] == PipelineState.FAILED
    assert h.albums.drafts == []
