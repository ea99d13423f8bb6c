import importlib.util
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from fakes import FakeService, make_services

SERVICES_DIR = Path(__file__).resolve().parents[1] / "services"


def _load_module(name: str, relative_path: str):
    spec = importlib.util.spec_from_file_location(name, SERVICES_DIR / relative_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def api(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.delenv("PROJECT_ID", raising=False)
    module = _load_module("page_pipeline_api", "api/main.py")
    module.stage_services = make_services()
    return module


GENERATE_BODY = {
    "website_id": "site_1",
    "page_type": "landing",
    "knowledge_base_id": "kb_1",
    "personas": ["cto"],
}


def test_sync_generation_returns_summary(api):
    client = TestClient(api.app)
    response = client.post("/v1/workspaces/ws_1/pages:generate", json=GENERATE_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["slug"] == "content-title"
    assert body["status"]["layout_generation"]["status"] == "completed"
    assert body["validation"]["is_valid"] is True
    assert "render_data" not in body


def test_sync_generation_full_output(api):
    client = TestClient(api.app)
    response = client.post(
        "/v1/workspaces/ws_1/pages:generate", json={**GENERATE_BODY, "return_full_output": True}
    )

    body = response.json()
    assert len(body["render_data"]["default_variant"]) == 5
    assert list(body["render_data"]["persona_variants"]) == ["cto"]
    assert body["status"]["storyline"]["status"] == "completed"


def test_invalid_page_type_is_rejected(api):
    client = TestClient(api.app)
    response = client.post(
        "/v1/workspaces/ws_1/pages:generate", json={**GENERATE_BODY, "page_type": "spaceship"}
    )

    assert response.status_code == 422


def test_async_generation_job_and_page_preview(api):
    client = TestClient(api.app)
    response = client.post("/v1/workspaces/ws_1/pages:generate-async", json=GENERATE_BODY)
    assert response.status_code == 200
    job_id = response.json()["job_id"]

    # TestClient runs background tasks before returning
    job = client.get(f"/v1/jobs/{job_id}").json()
    assert job["status"] == "COMPLETED"
    assert job["progress"]["status"] == "complete"
    page_id = job["outputs"]["page_id"]

    page = client.get(f"/v1/pages/{page_id}", params={"persona_id": "cto"}).json()
    assert page["has_generated_content"] is True
    assert page["title"] == "Content Title"
    assert page["preview"]["is_personalized"] is True
    assert len(page["preview"]["sections"]) == 5


def test_missing_job_and_page_return_404(api):
    client = TestClient(api.app)

    assert client.get("/v1/jobs/nope").status_code == 404
    assert client.get("/v1/pages/nope").status_code == 404


def test_store_failure_maps_to_500(api):
    class BrokenStore:
        def get_page(self, page_id):
            raise ConnectionError("down")

        def create_page(self, generation_input, *, page_id=None):
            raise ConnectionError("down")

    api.page_store = BrokenStore()
    client = TestClient(api.app)
    response = client.post("/v1/workspaces/ws_1/pages:generate", json=GENERATE_BODY)

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to create page record"


def test_stage_failures_still_answer_200(api):
    api.stage_services = make_services(layout=FakeService(error=RuntimeError("layout down")))
    client = TestClient(api.app)
    response = client.post("/v1/workspaces/ws_1/pages:generate", json=GENERATE_BODY)

    assert response.status_code == 200
    assert response.json()["status"]["layout_generation"]["status"] == "failed"


def test_health(api):
    assert TestClient(api.app).get("/health").json() == {"status": "ok"}


def test_worker_processes_pubsub_message(monkeypatch):
    import base64
    import json

    from fakes import make_input

    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.delenv("PROJECT_ID", raising=False)
    worker = _load_module("page_pipeline_worker", "worker/main.py")
    worker.stage_services = make_services()
    job = worker.job_store.create_job(workspace_id="ws_1", page_id=None)

    data = base64.b64encode(
        json.dumps({"job_id": job.id, "input": make_input().model_dump(mode="json")}).encode("utf-8")
    ).decode("ascii")
    client = TestClient(worker.app)
    response = client.post(
        "/v1/worker/process", json={"message": {"data": data}, "subscription": "sub"}
    )

    assert response.status_code == 200
    assert worker.job_store.get_job(job.id).status.value == "COMPLETED"

    bad = client.post("/v1/worker/process", json={"message": {}, "subscription": "sub"})
    assert bad.status_code == 400
