"""
Integration tests for FastAPI application.

These tests drive the full app through TestClient: real routes, handlers,
job registry, session, engine and work folder. Only the image API is mocked.
"""

import asyncio
import base64
import threading
import time

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

POLL_TIMEOUT_S = 5.0


def refine_body(png_bytes: bytes, **extra) -> dict:
    return {"image_b64": base64.b64encode(png_bytes).decode("ascii"), **extra}


def gated(gate: threading.Event, response):
    """edit_image side effect that holds the call until the gate opens."""

    async def _edit(request, api_key=None):
        while not gate.is_set():
            await asyncio.sleep(0.01)
        return response

    return _edit


def poll_until_finished(client: TestClient, job_id: str) -> dict:
    deadline = time.monotonic() + POLL_TIMEOUT_S
    while True:
        data = client.get(f"/refine/jobs/{job_id}").json()
        if data["status"] in ("SUCCESS", "FAILURE"):
            return data
        assert time.monotonic() < deadline, f"job {job_id} did not finish: {data}"
        time.sleep(0.02)


# ============================================================================
# Service endpoints
# ============================================================================


def test_root_endpoint(api):
    """Test root endpoint returns service info."""
    response = api.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "0.1.0"
    assert data["refine"] == "/refine"
    assert data["jobs"] == "/refine/jobs"
    assert "docs" in data
    assert "health" in data


def test_health_degraded_without_key(api, image_client):
    response = api.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["services"] == {
        "workspace": "ok",
        "api_key": "not_configured",
        "image_api": "not_checked",
    }
    assert data["busy"] is False
    image_client.health_check.assert_not_awaited()


def test_health_healthy_with_key(with_key, image_client):
    response = with_key.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    image_client.health_check.assert_awaited_once_with(api_key="sk-test")


def test_health_reports_unreachable_api(with_key, image_client):
    image_client.health_check.return_value = False

    data = with_key.get("/health").json()

    assert data["status"] == "degraded"
    assert data["services"]["image_api"] == "unreachable"


def test_request_id_header_is_echoed(api):
    response = api.get("/", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert api.get("/").headers["X-Request-ID"]


def test_set_api_key(api):
    response = api.put("/settings/api-key", json={"api_key": "  sk-live  "})

    assert response.status_code == 204
    assert api.credentials.load() == "sk-live"


def test_set_blank_api_key_is_rejected(api):
    response = api.put("/settings/api-key", json={"api_key": "   "})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


# ============================================================================
# Synchronous refine
# ============================================================================


def test_refine_success(with_key, image_client, make_response, png_bytes, generated_bytes):
    image_client.edit_image.return_value = make_response(200, image=generated_bytes)

    response = with_key.post("/refine", json=refine_body(png_bytes, preset="restore"))

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["layer_name"] == "Refined Output"
    assert data["size"] == "auto"
    assert base64.b64decode(data["image_b64"]) == generated_bytes
    assert data["generation"]["total_attempts"] == 1
    assert data["generation"]["sizes_tried"] == ["auto"]

    request = image_client.edit_image.call_args.args[0]
    assert request.image == png_bytes
    assert request.prompt.startswith("Make this photo look")


def test_refine_custom_prompt_and_size(with_key, image_client, make_response, png_bytes, generated_bytes):
    image_client.edit_image.return_value = make_response(200, image=generated_bytes)

    response = with_key.post(
        "/refine",
        json=refine_body(png_bytes, prompt="Make it a watercolor.", size="1024x1536"),
    )

    assert response.status_code == 200
    request = image_client.edit_image.call_args.args[0]
    assert request.prompt == "Make it a watercolor."
    assert request.size.value == "1024x1536"


def test_refine_exhausted_returns_502(with_key, image_client, make_response, png_bytes):
    image_client.edit_image.side_effect = [
        make_response(400, body_text="auto not supported"),
        make_response(400, body_text="image too large"),
    ]

    response = with_key.post("/refine", json=refine_body(png_bytes))

    assert response.status_code == 502
    data = response.json()
    assert data["error"] == "generation_failed"
    assert data["message"] == "Image API error 400. image too large"
    assert data["details"]["sizes_tried"] == ["auto", "1024x1024"]
    assert not with_key.registry.is_busy()


def test_refine_without_key(api, image_client, png_bytes):
    response = api.post("/refine", json=refine_body(png_bytes))

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "missing_credential"
    assert data["message"] == "Enter your OpenAI API key first."
    image_client.edit_image.assert_not_awaited()


def test_refine_invalid_image(with_key):
    response = with_key.post("/refine", json={"image_b64": "not base64!!"})

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "invalid_request"
    assert data["details"]["errors"][0]["loc"] == ["body", "image_b64"]


# ============================================================================
# Background jobs
# ============================================================================


def test_job_flow(with_key, image_client, make_response, png_bytes, generated_bytes):
    image_client.edit_image.return_value = make_response(200, image=generated_bytes)

    response = with_key.post("/refine/jobs", json=refine_body(png_bytes))

    assert response.status_code == 202
    submitted = response.json()
    job_id = submitted["job_id"]
    assert submitted["status_url"] == f"/refine/jobs/{job_id}"

    status = poll_until_finished(with_key, job_id)
    assert status["status"] == "SUCCESS"
    assert status["mode"] == "Upscale"
    assert status["percent"] == 100
    assert status["message"] == "Done. New layer 'Refined Output' added."
    assert status["result_url"] == f"/refine/jobs/{job_id}/result"
    assert status["generation"]["final_size"] == "auto"
    assert status["finished_at"] is not None

    result = with_key.get(status["result_url"])
    assert result.status_code == 200
    assert result.headers["content-type"] == "image/png"
    assert result.headers["X-Layer-Name"] == "Refined Output"
    assert result.content == generated_bytes


def test_failed_job(with_key, image_client, make_response, png_bytes):
    image_client.edit_image.return_value = make_response(403, body_text="forbidden")

    job_id = with_key.post("/refine/jobs", json=refine_body(png_bytes)).json()["job_id"]
    status = poll_until_finished(with_key, job_id)

    assert status["status"] == "FAILURE"
    assert status["error"] == "Image API error 403. forbidden"
    assert status["result_url"] is None

    result = with_key.get(f"/refine/jobs/{job_id}/result")
    assert result.status_code == 502


def test_job_submit_without_key(api, png_bytes):
    response = api.post("/refine/jobs", json=refine_body(png_bytes))

    assert response.status_code == 400
    assert response.json()["error"] == "missing_credential"
    assert not api.registry.is_busy()


def test_unknown_job(api):
    response = api.get("/refine/jobs/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "job_not_found"

    assert api.get("/refine/jobs/does-not-exist/result").status_code == 404


def test_single_generation_in_flight(with_key, image_client, make_response, png_bytes, generated_bytes):
    """Test a running job blocks both refine endpoints until it finishes."""
    gate = threading.Event()
    image_client.edit_image.side_effect = gated(gate, make_response(200, image=generated_bytes))

    try:
        job_id = with_key.post("/refine/jobs", json=refine_body(png_bytes)).json()["job_id"]

        conflict = with_key.post("/refine", json=refine_body(png_bytes))
        assert conflict.status_code == 409
        assert conflict.json()["details"] == {"active_job_id": job_id}

        assert with_key.post("/refine/jobs", json=refine_body(png_bytes)).status_code == 409
        assert with_key.get("/health").json()["busy"] is True

        pending = with_key.get(f"/refine/jobs/{job_id}/result")
        assert pending.status_code == 202
    finally:
        gate.set()

    assert poll_until_finished(with_key, job_id)["status"] == "SUCCESS"
    assert image_client.edit_image.await_count == 1
    assert with_key.get("/health").json()["busy"] is False
