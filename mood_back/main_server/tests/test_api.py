import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from mood_back.main_server.app.adapters.provenance.memory_store import InMemoryProvenanceStore
from mood_back.main_server.app.api.app import create_app
from mood_back.main_server.app.api.v1.deps import Container
from mood_back.main_server.app.application.job_status_client import JobStatusClient
from mood_back.main_server.app.application.provenance_log import ProvenanceLog
from mood_back.main_server.app.application.usecases.retry_job_usecase import RetryCoordinator
from mood_back.main_server.app.application.usecases.run_pipeline_usecase import PipelineOrchestrator
from mood_back.main_server.app.config import PipelineConfig, PollConfig
from mood_back.main_server.app.domain.jobs_domain import AnalysisRequest, JobKind, JobStatus
from mood_back.main_server.tests.doubles import (
    FakeAlbumStore,
    ScriptedJobApi,
    fails,
    image_result,
    make_job,
    music_result,
    no_sleep,
    representation,
    succeeds,
)

POLL = PollConfig(max_attempts=5, interval_ms=1)


def _container(image_script=None) -> tuple[Container, dict]:
    apis = {
        JobKind.ANALYSIS: ScriptedJobApi(JobKind.ANALYSIS, succeeds(representation())),
        JobKind.IMAGE: ScriptedJobApi(JobKind.IMAGE, image_script or succeeds(image_result())),
        JobKind.MUSIC: ScriptedJobApi(JobKind.MUSIC, succeeds(music_result())),
    }
    clients = {kind: JobStatusClient(api, poll=POLL, sleep=no_sleep) for kind, api in apis.items()}
    provenance = asyncio.run(ProvenanceLog.open(InMemoryProvenanceStore()))
    albums = FakeAlbumStore()
    orchestrator = PipelineOrchestrator(
        analysis=clients[JobKind.ANALYSIS],
        image=clients[JobKind.IMAGE],
        music=clients[JobKind.MUSIC],
        provenance=provenance,
        albums=albums,
    )
    container = Container(
        config=PipelineConfig(),
        clients=clients,
        provenance=provenance,
        orchestrator=orchestrator,
        retries={kind: RetryCoordinator(c) for kind, c in clients.items()},
        albums=albums,
    )
    return container, apis


@pytest.fixture
def api_client():
    container, apis = _container()
    with TestClient(create_app(container=container)) as client:
        yield client, apis


def _run(client, **overrides):
    body = {"sessionId": "session-42", "mood": "calm", "duration": 90, "freeText": "secret"}
    body.update(overrides)
    return client.post("/v1/pipeline/runs", json=body)


def test_health_reports_backend_and_log_count(api_client):
    client, _ = api_client
    _run(client)

    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["provenanceBackend"] == "memory"
    assert body["provenanceLogs"] == 1


def test_run_pipeline_returns_outcome(api_client):
    client, _ = api_client

    r = _run(client)

    assert r.status_code == 201
    body = r.json()
    assert body["albumId"] == "album-1"
    assert body["state"] == "complete"
    assert body["degraded"] is False
    assert body["musicAvailable"] is True
    assert body["logId"].startswith("log_")


def test_provenance_reads_after_a_run(api_client):
    client, _ = api_client
    log_id = _run(client).json()["logId"]

    summaries = client.get("/v1/provenance").json()
    assert [s["id"] for s in summaries] == [log_id]
    assert summaries[0]["albumId"] == "album-1"
    assert summaries[0]["success"] is True

    record = client.get(f"/v1/provenance/{log_id}").json()
    assert record["sessionId"] == "session-42"
    assert record["album"]["albumId"] == "album-1"
    assert "secret" not in json.dumps(record)

    by_session = client.get("/v1/provenance/sessions/session-42").json()
    assert by_session["id"] == log_id

    export = client.get(f"/v1/provenance/{log_id}/export")
    assert export.status_code == 200
    assert "attachment" in export.headers["content-disposition"]
    assert json.loads(export.text)["id"] == log_id


def test_unknown_provenance_is_404(api_client):
    client, _ = api_client
    assert client.get("/v1/provenance/log_nope").status_code == 404
    assert client.get("/v1/provenance/log_nope/export").status_code == 404
    assert client.get("/v1/provenance/sessions/nobody").status_code == 404
    assert client.delete("/v1/provenance/log_nope").status_code == 404


def test_delete_and_clear(api_client):
    client, _ = api_client
    first = _run(client).json()["logId"]
    _run(client, sessionId="session-43")

    assert client.delete(f"/v1/provenance/{first}").status_code == 204
    assert client.get(f"/v1/provenance/{first}").status_code == 404
    assert len(client.get("/v1/provenance").json()) == 1

    assert client.delete("/v1/provenance").status_code == 204
    assert client.get("/v1/provenance").json() == []


def test_invalid_session_is_422(api_client):
    client, _ = api_client
    assert _run(client, duration=0).status_code == 422


def test_image_failure_is_502_with_stage_and_remote_error():
    container, _ = _container(image_script=fails("NSFW_BLOCKED", "Prompt rejected by safety filter"))
    with TestClient(create_app(container=container)) as client:
        r = _run(client)

    assert r.status_code == 502
    body = r.json()
    assert body["stage"] == "image-generation"
    assert body["errorCode"] == "NSFW_BLOCKED"
    assert body["message"] == "Prompt rejected by safety filter"
    assert container.provenance.get(body["logId"]).success is False


def test_retry_endpoint(api_client):
    client, apis = api_client
    original = AnalysisRequest(mood="anxious", duration=45, free_text="deadline")
    apis[JobKind.ANALYSIS].seed(
        make_job(JobKind.ANALYSIS, "an-old", JobStatus.FAILED, input=original, error_message="overloaded")
    )

    r = client.post("/v1/jobs/analysis/an-old/retry")

    assert r.status_code == 202
    assert r.json()["jobId"] == "analysis-1"
    assert r.json()["status"] == "queued"
    assert apis[JobKind.ANALYSIS].submitted == [original]


def test_retry_errors(api_client):
    client, apis = api_client
    apis[JobKind.IMAGE].seed(make_job(JobKind.IMAGE, "img-bare", JobStatus.FAILED, error_message="x"))

    assert client.post("/v1/jobs/image/img-bare/retry").status_code == 409
    assert client.post("/v1/jobs/image/img-missing/retry").status_code == 404
    assert client.post("/v1/jobs/video/v-1/retry").status_code == 422
