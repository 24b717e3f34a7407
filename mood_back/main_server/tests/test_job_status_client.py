import asyncio

import pytest

from mood_back.main_server.app.application.job_status_client import JobStatusClient
from mood_back.main_server.app.config import IMAGE_POLL_DEFAULT, PollConfig
from mood_back.main_server.app.domain.errors_domain import (
    PollCancelledError,
    PollTimeoutError,
    TransportError,
)
from mood_back.main_server.app.domain.jobs_domain import ImageRequest, JobKind, JobStatus
from mood_back.main_server.tests.doubles import (
    RecordingSleep,
    ScriptedJobApi,
    fails,
    image_result,
    never_finishes,
    no_sleep,
    succeeds,
)

REQUEST = ImageRequest(mood="calm", duration=90, style_preset="abstract-oil")


@pytest.mark.asyncio
async def test_poll_returns_first_terminal_status_and_reports_every_update():
    api = ScriptedJobApi(JobKind.IMAGE, succeeds(image_result(), running_polls=2))
    client = JobStatusClient(api, poll=PollConfig(max_attempts=10, interval_ms=5), sleep=no_sleep)
    receipt = await client.submit(REQUEST)

    seen = []
    job = await client.poll_to_terminal(receipt.job_id, lambda j: seen.append(j.status))

    assert job.status == JobStatus.SUCCEEDED
    assert job.result.result_url == "https://img.example/cover.png"
    assert seen == [JobStatus.QUEUED, JobStatus.RUNNING, JobStatus.RUNNING, JobStatus.SUCCEEDED]
    assert len(api.status_calls) == 4


@pytest.mark.asyncio
async def test_failed_job_is_returned_not_raised():
    api = ScriptedJobApi(JobKind.IMAGE, fails("RATE_LIMIT", "Too many requests"))
    client = JobStatusClient(api, poll=IMAGE_POLL_DEFAULT, sleep=no_sleep)

    job = await client.run(REQUEST)

    assert job.status == JobStatus.FAILED
    assert job.error_code == "RATE_LIMIT"
    assert job.failure_message() == "Too many requests"


@pytest.mark.asyncio
async def test_timeout_after_exactly_max_attempts_without_trailing_sleep():
    api = ScriptedJobApi(JobKind.IMAGE, never_finishes())
    sleep = RecordingSleep()
    client = JobStatusClient(api, poll=PollConfig(max_attempts=3, interval_ms=2000), sleep=sleep)
    receipt = await client.submit(REQUEST)

    with pytest.raises(PollTimeoutError) as ei:
        await client.poll_to_terminal(receipt.job_id)

    assert ei.value.attempts == 3
    assert ei.value.job_id == receipt.job_id
    assert len(api.status_calls) == 3
    assert sleep.calls == [2.0, 2.0]


@pytest.mark.asyncio
async def test_per_call_overrides_win_over_defaults():
    api = ScriptedJobApi(JobKind.IMAGE, never_finishes())
    sleep = RecordingSleep()
    client = JobStatusClient(api, poll=IMAGE_POLL_DEFAULT, sleep=sleep)
    receipt = await client.submit(REQUEST)

    with pytest.raises(PollTimeoutError):
        await client.poll_to_terminal(receipt.job_id, max_attempts=2, interval_ms=10)

    assert len(api.status_calls) == 2
    assert sleep.calls == [0.01]


@pytest.mark.asyncio
async def test_cancel_before_first_poll_makes_no_status_call():
    api = ScriptedJobApi(JobKind.IMAGE, never_finishes())
    client = JobStatusClient(api, poll=IMAGE_POLL_DEFAULT, sleep=no_sleep)
    receipt = await client.submit(REQUEST)
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(PollCancelledError):
        await client.poll_to_terminal(receipt.job_id, cancel=cancel)

    assert api.status_calls == []


@pytest.mark.asyncio
async def test_cancel_during_sleep_stops_the_next_fetch():
    api = ScriptedJobApi(JobKind.IMAGE, never_finishes())
    cancel = asyncio.Event()

    async def sleep_then_cancel(seconds: float) -> None:
        cancel.set()

    client = JobStatusClient(api, poll=IMAGE_POLL_DEFAULT, sleep=sleep_then_cancel)
    receipt = await client.submit(REQUEST)

    with pytest.raises(PollCancelledError):
        await client.poll_to_terminal(receipt.job_id, cancel=cancel)

    assert len(api.status_calls) == 1


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    api = ScriptedJobApi(JobKind.IMAGE, never_finishes())
    client = JobStatusClient(api, poll=IMAGE_POLL_DEFAULT, sleep=no_sleep)

    with pytest.raises(TransportError):
        await client.poll_to_terminal("unknown-job")


def test_poll_config_rejects_zero_attempts():
    with pytest.raises(ValueError):
        PollConfig(max_attempts=0, interval_ms=100)


def test_default_ceilings():
    assert IMAGE_POLL_DEFAULT.ceiling_seconds == 120.0
