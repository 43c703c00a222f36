"""Tests for the HTTP surface."""

from sqlalchemy.exc import OperationalError

from app.main import app as fastapi_app
from app.models.job import ProcessingJob
from app.routes.scheduler import get_scheduler
from app.routes.worker import get_worker
from app.scheduler import PipelineScheduler
from app.worker import PipelineWorker

from conftest import FakeAIClient, add_messages, mark_normalized


class StubDispatcher:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def dispatch(self, worker_group, batch_size):
        self.calls.append(worker_group)
        if worker_group in self.failing:
            raise RuntimeError(f"{worker_group} timed out")
        return {"status": "idle", "worker_group": worker_group}


def _use_dispatcher(client, dispatcher):
    fastapi_app.dependency_overrides[get_scheduler] = lambda: PipelineScheduler(dispatcher)


def test_tick_endpoint(client):
    """Test tick returns 200 with per-group results, including errors."""
    dispatcher = StubDispatcher(failing={"embed"})
    _use_dispatcher(client, dispatcher)

    response = client.post("/pipeline-scheduler/tick")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "tick_complete"
    assert body["results"]["normalize"] == {"status": "idle", "worker_group": "normalize"}
    assert body["results"]["embed"] == {"error": "embed timed out"}
    assert body["results"]["annotate"]["worker_group"] == "annotate"


def test_unrecognized_paths_tick(client):
    """Test POSTs to the bare or unknown paths behave as tick."""
    dispatcher = StubDispatcher()
    _use_dispatcher(client, dispatcher)

    for path in ("/pipeline-scheduler", "/pipeline-scheduler/whatever/else"):
        response = client.post(path)
        assert response.status_code == 200
        assert response.json()["status"] == "tick_complete"

    assert len(dispatcher.calls) == 6


def test_backfill_endpoint(client, test_db):
    """Test backfill enqueues unprocessed messages."""
    ids = add_messages(test_db, "org-1", 12)
    mark_normalized(test_db, ids[:2])

    response = client.post(
        "/pipeline-scheduler/backfill",
        json={"organization_id": "org-1", "limit": 10, "priority": 5},
    )

    assert response.status_code == 200
    assert response.json() == {
        "status": "backfill_enqueued",
        "total_messages": 10,
        "already_processed": 0,
        "enqueued": 10,
    }


def test_backfill_requires_organization(client, test_db):
    """Test a missing organization_id is a 400 with no writes."""
    add_messages(test_db, "org-1", 3)

    for kwargs in ({"json": {}}, {}):
        response = client.post("/pipeline-scheduler/backfill", **kwargs)
        assert response.status_code == 400
        assert response.json() == {"error": "organization_id required"}

    assert test_db.query(ProcessingJob).count() == 0


def test_backfill_rejects_invalid_limit(client):
    """Test a non-positive limit is a 400."""
    response = client.post("/pipeline-scheduler/backfill", json={"organization_id": "org-1", "limit": 0})

    assert response.status_code == 400
    assert "limit" in response.json()["error"]


def test_backfill_database_error_is_500(client, test_db, monkeypatch):
    """Test a downstream query failure surfaces as a 500 with the error."""

    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(test_db, "query", broken_query)

    response = client.post("/pipeline-scheduler/backfill", json={"organization_id": "org-1"})

    assert response.status_code == 500
    assert "connection lost" in response.json()["error"]


def test_stats_endpoint(client, test_db):
    """Test stats reflect the job store at call time."""
    client.post("/pipeline-scheduler/backfill", json={"organization_id": "org-1"})
    assert client.get("/pipeline-scheduler/stats").json()["queue_depth"] == 0

    add_messages(test_db, "org-1", 4)
    client.post("/pipeline-scheduler/backfill", json={"organization_id": "org-1"})

    body = client.get("/pipeline-scheduler/stats").json()
    assert body["queue_depth"] == 4
    assert body["failed_jobs"] == 0
    assert body["pipeline_stats"][0]["job_type"] == "normalize_message"
    assert body["pipeline_stats"][0]["pending"] == 4


def test_worker_endpoint(client, test_db):
    """Test the worker endpoint processes a batch."""
    fastapi_app.dependency_overrides[get_worker] = lambda: PipelineWorker(FakeAIClient())
    add_messages(test_db, "org-1", 2)
    client.post("/pipeline-scheduler/backfill", json={"organization_id": "org-1"})

    response = client.post("/pipeline-worker", json={"worker_group": "normalize", "batch_size": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["jobs_claimed"] == 2
    assert body["chained"] == 2


def test_worker_endpoint_tolerates_bad_body(client):
    """Test a malformed body is treated as empty."""
    fastapi_app.dependency_overrides[get_worker] = lambda: PipelineWorker(FakeAIClient())

    response = client.post(
        "/pipeline-worker",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "idle", "worker_group": "normalize", "message": "No pending jobs"}


def test_options_preflight(client):
    """Test OPTIONS returns an empty 200 with CORS headers."""
    response = client.options(
        "/pipeline-scheduler/backfill",
        headers={
            "Origin": "https://crm.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, x-client-info, apikey, content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://crm.example.com"

    plain = client.options("/pipeline-scheduler/tick")
    assert plain.status_code == 200
    assert plain.content == b""


def test_cors_headers_on_error_responses(client):
    """Test CORS headers are applied to error responses too."""
    response = client.post(
        "/pipeline-scheduler/backfill",
        json={},
        headers={"Origin": "https://crm.example.com"},
    )

    assert response.status_code == 400
    assert "access-control-allow-origin" in response.headers


def test_unhandled_error_is_json_500_with_cors(client):
    """Test an unexpected exception becomes a 500 error body with CORS headers."""

    class BrokenWorker:
        def run_batch(self, *args, **kwargs):
            raise RuntimeError("boom")

    fastapi_app.dependency_overrides[get_worker] = lambda: BrokenWorker()

    response = client.post(
        "/pipeline-worker",
        json={"worker_group": "normalize"},
        headers={"Origin": "https://crm.example.com"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}
    assert "access-control-allow-origin" in response.headers


def test_health(client):
    """Test health check."""
    assert client.get("/health").json() == {"status": "healthy"}
