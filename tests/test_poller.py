import asyncio
import json

import httpx
import pytest

from studio.client.jobs_client import JobsClient, has_product_shot
from studio.client.poller import JobPoller, PollState

FAST = dict(interval=0.01, max_interval=0.04, timeout=0.2, fallback_interval=0.01, fallback_timeout=0.2)


class ScriptedJobs:
    """fetch_job stand-in that walks through a list of statuses, repeating the last one."""

    def __init__(self, statuses, error=None):
        self.statuses = list(statuses)
        self.error = error
        self.reads = []

    async def __call__(self, job_id):
        self.reads.append(job_id)
        if self.error:
            raise self.error
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return {"id": job_id, "status": status}


class Recorder:
    def __init__(self):
        self.events = []

    def on_update(self, job):
        self.events.append(("update", job["status"]))

    def on_complete(self, job):
        self.events.append(("complete", job["status"]))

    def on_settled(self, job_id, state):
        self.events.append(("settled", state))


def _poller(fetch_job, recorder, **kwargs):
    options = dict(FAST)
    options.update(kwargs)
    return JobPoller(
        fetch_job,
        on_update=recorder.on_update,
        on_complete=recorder.on_complete,
        on_settled=recorder.on_settled,
        **options,
    )


@pytest.mark.asyncio
async def test_updates_precede_single_completion():
    recorder = Recorder()
    poller = _poller(ScriptedJobs(["queued", "running", "succeeded"]), recorder)

    poller.start_polling("job_1")
    state = await poller.wait()

    assert state == PollState.SUCCEEDED
    assert recorder.events == [
        ("update", "queued"),
        ("update", "running"),
        ("update", "succeeded"),
        ("complete", "succeeded"),
    ]
    assert not poller.is_polling


@pytest.mark.asyncio
async def test_failed_job_completes_with_failed_state():
    recorder = Recorder()
    poller = _poller(ScriptedJobs(["running", "failed"]), recorder)

    poller.start_polling("job_1")

    assert await poller.wait() == PollState.FAILED
    assert recorder.events[-1] == ("complete", "failed")
    assert [e for e in recorder.events if e[0] == "complete"] == [("complete", "failed")]


@pytest.mark.asyncio
async def test_start_is_idempotent_for_same_job():
    recorder = Recorder()
    fetch = ScriptedJobs(["running", "running", "succeeded"])
    poller = _poller(fetch, recorder)

    poller.start_polling("job_1")
    first_task = poller._task
    poller.start_polling("job_1")

    assert poller._task is first_task
    await poller.wait()
    assert [e for e in recorder.events if e[0] == "complete"] == [("complete", "succeeded")]


@pytest.mark.asyncio
async def test_switching_jobs_stops_previous_watch():
    recorder = Recorder()
    fetch = ScriptedJobs(["running"])
    poller = _poller(fetch, recorder, timeout=5.0)

    poller.start_polling("job_1")
    await asyncio.sleep(0.03)
    fetch.statuses = ["succeeded"]
    poller.start_polling("job_2")
    await poller.wait()

    assert poller.job_id == "job_2"
    assert poller.state == PollState.SUCCEEDED
    assert fetch.reads[-1] == "job_2"
    assert recorder.events.count(("complete", "succeeded")) == 1


@pytest.mark.asyncio
async def test_stop_polling_is_local_and_silent():
    recorder = Recorder()
    poller = _poller(ScriptedJobs(["running"]), recorder, timeout=5.0)

    poller.start_polling("job_1")
    await asyncio.sleep(0.03)
    poller.stop_polling()
    await asyncio.sleep(0.03)

    assert poller.state == PollState.IDLE
    assert not poller.is_polling
    assert all(event[0] == "update" for event in recorder.events)


@pytest.mark.asyncio
async def test_timeout_falls_back_and_resolves_from_entity():
    recorder = Recorder()
    refreshes = []

    async def fetch_entity():
        refreshes.append(1)
        return [{"type": "product_shot", "sort_order": 0}] if len(refreshes) >= 2 else []

    poller = _poller(
        ScriptedJobs(["running"]),
        recorder,
        timeout=0.05,
        fetch_entity=fetch_entity,
        is_entity_complete=has_product_shot,
    )

    poller.start_polling("job_1")

    assert await poller.wait() == PollState.RESOLVED
    assert recorder.events[-1] == ("settled", PollState.RESOLVED)
    assert not any(event[0] == "complete" for event in recorder.events)
    assert len(refreshes) == 2


@pytest.mark.asyncio
async def test_transport_error_falls_back_and_gives_up_quietly():
    recorder = Recorder()

    async def fetch_entity():
        raise httpx.ConnectError("offline")

    poller = _poller(
        ScriptedJobs(["running"], error=httpx.ConnectError("offline")),
        recorder,
        fetch_entity=fetch_entity,
        is_entity_complete=has_product_shot,
        fallback_timeout=0.05,
    )

    poller.start_polling("job_1")

    assert await poller.wait() == PollState.GAVE_UP
    assert recorder.events == [("settled", PollState.GAVE_UP)]


@pytest.mark.asyncio
async def test_gives_up_without_entity_reader():
    recorder = Recorder()
    poller = _poller(ScriptedJobs(["queued"]), recorder, timeout=0.03)

    poller.start_polling("job_1")

    assert await poller.wait() == PollState.GAVE_UP
    assert recorder.events[-1] == ("settled", PollState.GAVE_UP)


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited():
    seen = []

    async def on_complete(job):
        await asyncio.sleep(0)
        seen.append(job["status"])

    poller = JobPoller(ScriptedJobs(["succeeded"]), on_complete=on_complete, **FAST)
    poller.start_polling("job_1")
    await poller.wait()

    assert seen == ["succeeded"]


@pytest.mark.asyncio
async def test_restart_from_on_update_hands_over_cleanly():
    completed = []
    poller = None

    async def fetch_job(job_id):
        return {"id": job_id, "status": "succeeded"}

    def on_update(job):
        if job["id"] == "job_a":
            poller.start_polling("job_b")

    poller = JobPoller(fetch_job, on_update=on_update, on_complete=lambda job: completed.append(job["id"]), **FAST)
    poller.start_polling("job_a")

    assert await poller.wait() == PollState.SUCCEEDED
    assert poller.job_id == "job_b"
    assert completed == ["job_b"]


@pytest.mark.asyncio
async def test_stop_from_on_update_ends_watch_quietly():
    completed = []
    poller = None

    def on_update(job):
        poller.stop_polling()

    poller = JobPoller(
        ScriptedJobs(["succeeded"]),
        on_update=on_update,
        on_complete=lambda job: completed.append(job["id"]),
        **FAST,
    )
    poller.start_polling("job_1")
    await asyncio.sleep(0.03)

    assert await poller.wait() == PollState.IDLE
    assert not poller.is_polling
    assert completed == []


@pytest.mark.asyncio
async def test_callback_error_frees_the_slot():
    def on_update(job):
        raise ValueError("bad render state")

    poller = JobPoller(ScriptedJobs(["running"]), on_update=on_update, **FAST)
    poller.start_polling("job_1")

    with pytest.raises(ValueError):
        await poller.wait()
    assert poller.state == PollState.IDLE
    assert not poller.is_polling

    poller.on_update = None
    poller.fetch_job = ScriptedJobs(["succeeded"])
    poller.start_polling("job_2")
    assert await poller.wait() == PollState.SUCCEEDED


@pytest.mark.asyncio
async def test_reads_back_off_up_to_max_interval(monkeypatch):
    real_sleep = asyncio.sleep
    delays = []

    async def recording_sleep(delay):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", recording_sleep)
    fetch = ScriptedJobs(["running"] * 5 + ["succeeded"])
    poller = JobPoller(fetch, interval=1.0, max_interval=4.0, timeout=100.0)

    poller.start_polling("job_1")

    assert await poller.wait() == PollState.SUCCEEDED
    assert delays == [1.0, 2.0, 4.0, 4.0, 4.0]
    assert len(fetch.reads) == 6


@pytest.mark.asyncio
async def test_final_check_catches_job_finishing_at_deadline():
    recorder = Recorder()
    poller = None

    async def fetch_job(job_id):
        status = "succeeded" if poller.state == PollState.TIMED_OUT else "running"
        return {"id": job_id, "status": status}

    poller = _poller(fetch_job, recorder, timeout=0.05)
    poller.start_polling("job_1")

    assert await poller.wait() == PollState.SUCCEEDED
    assert recorder.events[-1] == ("complete", "succeeded")
    assert not any(event[0] == "settled" for event in recorder.events)


@pytest.mark.asyncio
async def test_final_check_after_transport_error_can_report_failure():
    recorder = Recorder()
    reads = []

    async def fetch_job(job_id):
        reads.append(job_id)
        if len(reads) == 1:
            raise httpx.ReadTimeout("slow network")
        return {"id": job_id, "status": "failed"}

    poller = _poller(fetch_job, recorder)
    poller.start_polling("job_1")

    assert await poller.wait() == PollState.FAILED


def test_has_product_shot():
    assert has_product_shot([{"type": "original", "sort_order": 1}, {"type": "product_shot", "sort_order": 0}])
    assert not has_product_shot([{"type": "original", "sort_order": 0}])
    assert not has_product_shot([])


@pytest.mark.asyncio
async def test_jobs_client_reads_bypass_cache():
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        return httpx.Response(200, json={"id": "job_1", "status": "running"})

    async with JobsClient("token-abc", base_url="http://studio.test", transport=httpx.MockTransport(handler)) as client:
        job = await client.get_job("job_1")

    assert job["status"] == "running"
    request = requests[0]
    assert request.url.path == "/api/v1/jobs/job_1"
    assert request.headers["Cache-Control"] == "no-store"
    assert request.headers["Authorization"] == "Bearer token-abc"


@pytest.mark.asyncio
async def test_jobs_client_raises_on_http_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"detail": "Job not found"}))

    async with JobsClient("token-abc", base_url="http://studio.test", transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_job("job_missing")


@pytest.mark.asyncio
async def test_jobs_client_creates_and_enqueues_job():
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        return httpx.Response(201, json={"id": "job_9", "status": "queued"})

    async with JobsClient("token-abc", base_url="http://studio.test", transport=httpx.MockTransport(handler)) as client:
        job = await client.create_job("product_shot", {"item_id": "item_1", "image_id": "img_1"}, execute=True)

    assert job == {"id": "job_9", "status": "queued"}
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v1/jobs"
    assert request.url.params["execute"] == "true"
    assert json.loads(request.content) == {
        "job_type": "product_shot",
        "input": {"item_id": "item_1", "image_id": "img_1"},
    }


@pytest.mark.asyncio
async def test_jobs_client_entity_lookups():
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        if request.url.path.endswith("/active"):
            return httpx.Response(200, json={"id": "job_active", "status": "running"})
        return httpx.Response(200, json=None)

    async with JobsClient("token-abc", base_url="http://studio.test", transport=httpx.MockTransport(handler)) as client:
        active = await client.find_active_job("tag", entity_id="item_1")
        recent = await client.find_recent_job("tag")

    assert active["id"] == "job_active"
    assert recent is None
    active_request, recent_request = requests
    assert active_request.url.path == "/api/v1/jobs/active"
    assert dict(active_request.url.params) == {"job_type": "tag", "entity_id": "item_1"}
    assert recent_request.url.path == "/api/v1/jobs/recent"
    assert dict(recent_request.url.params) == {"job_type": "tag"}
    assert all(request.headers["Cache-Control"] == "no-store" for request in requests)
