import threading
import time

import pytest
from fastapi.testclient import TestClient

from inktrace.capture.submission.github_contents import GitHubAPIError
from inktrace.capture.submission.pipeline import SubmissionPipeline
from inktrace.main import app
from inktrace.processing import SubmissionJobs

STROKES = [{"samples": [
    {"x": 10, "y": 10, "width": 4},
    {"x": 20, "y": 12, "width": 6},
    {"x": 30, "y": 11, "width": 5},
]}]


@pytest.fixture
def client(monkeypatch, tmp_path, store):
    monkeypatch.setenv("INKTRACE_GH_OWNER", "octo")
    monkeypatch.setenv("INKTRACE_GH_REPO", "samples")
    monkeypatch.setenv("INKTRACE_GH_PREFIX", "handwriting")
    monkeypatch.setenv("INKTRACE_GH_TOKEN", "t0ken")
    monkeypatch.delenv("INKTRACE_GH_BRANCH", raising=False)
    pipeline = SubmissionPipeline(output_dir=tmp_path, client_factory=store.client)
    monkeypatch.setattr(app.state, "jobs", SubmissionJobs(pipeline=pipeline))
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_vectorize(client):
    resp = client.post("/api/v1/capture/vectorize", json={"strokes": STROKES})
    assert resp.status_code == 200
    body = resp.json()
    assert body["primitive_count"] == 1
    assert body["svg"].startswith("<svg")
    assert 'fill-rule="nonzero"' in body["svg"]


def test_vectorize_rejects_bad_samples(client):
    resp = client.post("/api/v1/capture/vectorize", json={"strokes": [{"samples": []}]})
    assert resp.status_code == 422
    resp = client.post("/api/v1/capture/vectorize", json={"strokes": [{"samples": [{"x": 1, "y": 1, "width": -2}]}]})
    assert resp.status_code == 422


def test_submit_inline(client, store):
    resp = client.post("/api/v1/capture/submit", params={"background": "false"},
                       json={"strokes": STROKES, "label": "永", "source_index": 4})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["remote_path"] == "handwriting/U+6C38.svg"
    assert "handwriting/U+6C38.svg" in store.files

    tasks = client.get("/api/v1/capture/tasks").json()
    assert tasks[0]["state"] == "succeeded"
    assert tasks[0]["source_index"] == 4


def test_submit_in_background(client):
    resp = client.post("/api/v1/capture/submit", json={"strokes": STROKES, "label": "永"})
    assert resp.status_code == 200
    task_id = resp.json()["task_id"]
    assert resp.json()["status"] == "pending"

    deadline = time.time() + 5
    task = client.get(f"/api/v1/capture/tasks/{task_id}").json()
    while task["state"] == "pending" and time.time() < deadline:
        time.sleep(0.02)
        task = client.get(f"/api/v1/capture/tasks/{task_id}").json()
    assert task["state"] == "succeeded"
    assert task["remote_path"] == "handwriting/U+6C38.svg"


def test_submit_with_missing_token_override(client, store):
    resp = client.post("/api/v1/capture/submit", params={"background": "false"},
                       json={"strokes": STROKES, "label": "永", "destination": {"token": ""}})
    body = resp.json()
    assert body["success"] is False
    assert body["error_kind"] == "missing_configuration"
    assert store.network_calls == []


def test_unknown_task(client):
    assert client.get("/api/v1/capture/tasks/missing").status_code == 404


def test_completion(client, store):
    store.files["handwriting/U+6C38.svg"] = b"<svg/>"
    store.files["handwriting/U+6C38-1.svg"] = b"<svg/>"
    resp = client.post("/api/v1/capture/completion", json={"items": ["永", "和", "永", "永"]})
    assert resp.status_code == 200
    assert resp.json()["completed"] == [0, 2]
    assert resp.json()["names"] == ["U+6C38", "U+6C38-1"]
    assert resp.json()["labels"] == ["永", "永"]


def test_completion_requires_configuration(client, monkeypatch):
    monkeypatch.setenv("INKTRACE_GH_TOKEN", "")
    resp = client.post("/api/v1/capture/completion", json={"items": ["永"]})
    assert resp.status_code == 400


def test_completion_listing_failure(client, store):
    store.list_error = GitHubAPIError(404, "Not Found")
    resp = client.post("/api/v1/capture/completion", json={"items": ["永"]})
    assert resp.status_code == 502


def test_completion_labels_only_for_codepoint_names(client, store, monkeypatch):
    monkeypatch.setattr(app.state.jobs.pipeline, "naming_policy", "ascii")
    store.files["handwriting/Cafe.svg"] = b"<svg/>"
    body = client.post("/api/v1/capture/completion", json={"items": ["Café"]}).json()
    assert body["completed"] == [0]
    assert "labels" not in body


def test_inline_submit_does_not_block_other_requests(client, store, monkeypatch):
    original = store.get_file_sha

    def slow_sha(path):
        time.sleep(1.0)
        return original(path)

    monkeypatch.setattr(store, "get_file_sha", slow_sha)

    with client:
        submit = threading.Thread(target=lambda: client.post(
            "/api/v1/capture/submit", params={"background": "false"},
            json={"strokes": STROKES, "label": "永"},
        ))
        submit.start()
        time.sleep(0.2)
        started = time.monotonic()
        assert client.get("/health").status_code == 200
        elapsed = time.monotonic() - started
        submit.join(timeout=10)

    assert elapsed < 0.5
    assert "handwriting/U+6C38.svg" in store.files


def wait_for_task(client, task_id):
    deadline = time.time() + 5
    task = client.get(f"/api/v1/capture/tasks/{task_id}").json()
    while task["state"] == "pending" and time.time() < deadline:
        time.sleep(0.02)
        task = client.get(f"/api/v1/capture/tasks/{task_id}").json()
    return task


def test_session_requires_start(client):
    assert client.get("/api/v1/capture/session").status_code == 404
    resp = client.post("/api/v1/capture/session/submit", json={"strokes": STROKES})
    assert resp.status_code == 404


def test_session_submit_advances_and_completes(client, store):
    state = client.post("/api/v1/capture/session", json={"items": ["永", "和", "山"]}).json()
    assert state["cursor"] == 0
    assert state["current_label"] == "永"
    assert state["pending_uploads"] == 0

    resp = client.post("/api/v1/capture/session/submit", json={"strokes": STROKES})
    assert resp.status_code == 200
    body = resp.json()
    assert body["submitted_index"] == 0
    assert body["cursor"] == 1
    assert body["current_label"] == "和"

    task = wait_for_task(client, body["task_id"])
    assert task["state"] == "succeeded"
    assert task["remote_path"] == "handwriting/U+6C38.svg"

    state = client.get("/api/v1/capture/session").json()
    assert state["cursor"] == 1
    assert state["completed"] == [0]
    assert state["pending_uploads"] == 0


def test_session_failed_upload_rolls_cursor_back(client, store):
    store.put_status = 500
    client.post("/api/v1/capture/session", json={"items": ["永", "和"]})

    body = client.post("/api/v1/capture/session/submit", json={"strokes": STROKES}).json()
    assert body["cursor"] == 1

    task = wait_for_task(client, body["task_id"])
    assert task["state"] == "failed"

    state = client.get("/api/v1/capture/session").json()
    assert state["cursor"] == 0
    assert state["current_label"] == "永"
    assert state["completed"] == []


def test_session_jump_is_clamped(client):
    client.post("/api/v1/capture/session", json={"items": ["永", "和", "山"]})

    state = client.post("/api/v1/capture/session/jump", json={"index": 2}).json()
    assert state["cursor"] == 2
    assert state["current_label"] == "山"

    assert client.post("/api/v1/capture/session/jump", json={"index": 99}).json()["cursor"] == 2
    assert client.post("/api/v1/capture/session/jump", json={"index": -3}).json()["cursor"] == 0


def test_session_refresh_reads_remote_listing(client, store):
    store.files["handwriting/U+548C.svg"] = b"<svg/>"
    client.post("/api/v1/capture/session", json={"items": ["永", "和"]})

    state = client.post("/api/v1/capture/session/refresh", json={}).json()
    assert state["completed"] == [1]
    assert ("list", "handwriting") in store.calls
