from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from studio.api.deps import get_db, get_gateway, get_queue
from studio.core.errors import UpstreamSafetyBlock
from studio.core.security import create_access_jwt
from studio.main import app
from studio.models import Job, JobStatus, JobType

from tests.conftest import OTHER, OWNER


class FakeQueue:
    def __init__(self):
        self.enqueued = []

    def enqueue_execution(self, job_id, owner_id):
        self.enqueued.append((job_id, owner_id))


@pytest.fixture
def queue():
    return FakeQueue()


@pytest.fixture
def client(session_factory, gateway, queue):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_queue] = lambda: queue
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(user_id=OWNER):
    return {"Authorization": f"Bearer {create_access_jwt(user_id)}"}


def test_create_job_is_queued(client, queue, make_image):
    selfie = make_image()
    response = client.post(
        "/api/v1/jobs",
        json={"job_type": "headshot_generate", "input": {"selfie_image_id": selfie.id}},
        headers=_auth(),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "queued"
    assert body["owner_id"] == OWNER
    assert body["id"].startswith("job_")
    assert queue.enqueued == []


def test_create_job_with_execute_enqueues(client, queue, make_image):
    selfie = make_image()
    response = client.post(
        "/api/v1/jobs?execute=true",
        json={"job_type": "headshot_generate", "input": {"selfie_image_id": selfie.id}},
        headers=_auth(),
    )

    assert response.status_code == 201
    assert queue.enqueued == [(response.json()["id"], OWNER)]


def test_create_job_rejects_bad_input(client):
    response = client.post(
        "/api/v1/jobs",
        json={"job_type": "product_shot", "input": {"image_id": "img_1"}},
        headers=_auth(),
    )
    assert response.status_code == 422


def test_requests_without_token_are_unauthorized(client):
    assert client.post("/api/v1/jobs/execute", json={"job_id": "job_x"}).status_code == 401
    assert client.get("/api/v1/jobs/job_x", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_execute_success_then_conflict(client, gateway, make_image, make_job):
    job = make_job(JobType.HEADSHOT_GENERATE, {"selfie_image_id": make_image().id})

    first = client.post("/api/v1/jobs/execute", json={"job_id": job.id}, headers=_auth())
    second = client.post("/api/v1/jobs/execute", json={"job_id": job.id}, headers=_auth())

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["status"] == "succeeded"
    assert "image_id" in first.json()["result"]
    assert second.status_code == 409
    assert len(gateway.calls) == 1


def test_execute_other_users_job_is_not_found(client, make_image, make_job):
    job = make_job(JobType.HEADSHOT_GENERATE, {"selfie_image_id": make_image().id})

    response = client.post("/api/v1/jobs/execute", json={"job_id": job.id}, headers=_auth(OTHER))

    assert response.status_code == 404


def test_execute_failure_returns_structured_error(client, gateway, make_image, make_job):
    job = make_job(JobType.HEADSHOT_GENERATE, {"selfie_image_id": make_image().id})
    gateway.queue(UpstreamSafetyBlock("Safety Block: SAFETY"))

    response = client.post("/api/v1/jobs/execute", json={"job_id": job.id}, headers=_auth())

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["job_id"] == job.id
    assert body["error"] == "Safety Block: SAFETY"
    assert body["error_code"] == "safety_blocked"
    assert body["billable"] is False


def test_get_job_bypasses_cache(client, make_job):
    job = make_job(JobType.TAG, {"item_id": "item_1", "image_ids": ["img_1"]})

    response = client.get(f"/api/v1/jobs/{job.id}", headers=_auth())

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    assert response.json()["status"] == "queued"
    assert client.get(f"/api/v1/jobs/{job.id}", headers=_auth(OTHER)).status_code == 404


def test_active_job_lookup_matches_entity(client, make_job):
    make_job(JobType.PRODUCT_SHOT, {"item_id": "item_other", "image_id": "img_9"})
    wanted = make_job(JobType.PRODUCT_SHOT, {"item_id": "item_1", "image_id": "img_1"}, status=JobStatus.RUNNING)
    make_job(JobType.PRODUCT_SHOT, {"item_id": "item_1", "image_id": "img_2"}, status=JobStatus.SUCCEEDED)

    response = client.get(
        "/api/v1/jobs/active",
        params={"job_type": "product_shot", "entity_id": "item_1"},
        headers=_auth(),
    )

    assert response.status_code == 200
    assert response.json()["id"] == wanted.id


def test_active_job_lookup_returns_null(client):
    response = client.get("/api/v1/jobs/active", params={"job_type": "tag", "entity_id": "item_1"}, headers=_auth())
    assert response.status_code == 200
    assert response.json() is None


def test_recent_job_lookup_ignores_old_jobs(client, db, make_job):
    old = make_job(JobType.TAG, {"item_id": "item_1", "image_ids": ["img_1"]}, status=JobStatus.SUCCEEDED)
    db.query(Job).filter(Job.id == old.id).update(
        {Job.updated_at: datetime.utcnow() - timedelta(minutes=5)}, synchronize_session=False
    )
    db.commit()

    params = {"job_type": "tag", "entity_id": "item_1"}
    assert client.get("/api/v1/jobs/recent", params=params, headers=_auth()).json() is None

    fresh = make_job(JobType.TAG, {"item_id": "item_1", "image_ids": ["img_1"]}, status=JobStatus.FAILED)
    assert client.get("/api/v1/jobs/recent", params=params, headers=_auth()).json()["id"] == fresh.id


def test_item_images_are_ordered(client, make_item):
    item = make_item(image_count=2, product_shot=True)

    response = client.get(f"/api/v1/items/{item.id}/images", headers=_auth())

    assert response.status_code == 200
    links = response.json()
    assert [link["sort_order"] for link in links] == [0, 1, 2]
    assert links[0]["type"] == "product_shot"
    assert client.get(f"/api/v1/items/{item.id}/images", headers=_auth(OTHER)).status_code == 404
