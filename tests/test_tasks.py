from __future__ import annotations

import base64
import time
from typing import Any

from fastapi.testclient import TestClient

from job_console.app.settings import Settings
from job_console.main import create_app


def _wait_for_terminal(client: TestClient, task_id: str, timeout_s: float = 5.0) -> dict[str, Any]:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        response = client.get(f"/task/{task_id}")
        assert response.status_code == 200
        payload = response.json()
        if payload["status"] != "pending":
            return payload
        time.sleep(0.01)
    raise TimeoutError(f"Task {task_id} stayed pending for {timeout_s:.1f}s")


def test_generate_task_lifecycle(backend_client: TestClient) -> None:
    create_response = backend_client.post("/generate", json={"prompt": "Plan the Atlas launch"})
    assert create_response.status_code == 200
    task_id = create_response.json()["taskID"]

    finished = _wait_for_terminal(backend_client, task_id)
    assert finished["status"] == "completed"
    assert finished["result"]["text"] == "Generated response for: Plan the Atlas launch"
    assert "error" not in finished


def test_summarize_uses_configured_word_limit(backend_client: TestClient) -> None:
    task_id = backend_client.post(
        "/summarize",
        json={"data": "one two three four five six seven"},
    ).json()["taskID"]

    finished = _wait_for_terminal(backend_client, task_id)
    assert finished["result"] == {
        "summary": "one two three four five",
        "word_count": 7,
        "truncated": True,
    }


def test_invalid_image_fails_the_task(backend_client: TestClient) -> None:
    task_id = backend_client.post(
        "/multimodal",
        json={"prompt": "what is this", "image": "!!!"},
    ).json()["taskID"]

    finished = _wait_for_terminal(backend_client, task_id)
    assert finished["status"] == "failed"
    assert finished["error"] == "multimodal failed: image is not valid base64"
    assert "result" not in finished


def test_steganography_task_returns_carrier(backend_client: TestClient) -> None:
    carrier = base64.b64encode(bytes(512)).decode("ascii")
    task_id = backend_client.post(
        "/steganography",
        json={"prompt": "hidden", "image": carrier},
    ).json()["taskID"]

    finished = _wait_for_terminal(backend_client, task_id)
    assert finished["status"] == "completed"
    assert finished["result"]["embedded_bytes"] == 6
    assert finished["result"]["carrier_bytes"] == 512


def test_chat_help_and_unknown_commands_answer_inline(backend_client: TestClient) -> None:
    help_response = backend_client.post("/chat", json={"prompt": "/help"})
    assert help_response.json() == {"response": "Commands: /help, /run [prompt]"}

    unknown = backend_client.post("/chat", json={"prompt": "/dance now"})
    assert unknown.json() == {"response": "Unknown command: /dance"}

    usage = backend_client.post("/chat", json={"prompt": "/run"})
    assert usage.json() == {"response": "Usage: /run [prompt]"}


def test_chat_prompt_and_run_command_are_deferred(backend_client: TestClient) -> None:
    plain_id = backend_client.post("/chat", json={"prompt": "hello"}).json()["taskID"]
    run_id = backend_client.post("/chat", json={"prompt": "/run  status report"}).json()["taskID"]

    assert _wait_for_terminal(backend_client, plain_id)["result"] == {"response": "You said: hello"}
    assert _wait_for_terminal(backend_client, run_id)["result"] == {
        "response": "You said: status report"
    }


def test_unknown_task_returns_404(backend_client: TestClient) -> None:
    response = backend_client.get("/task/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Task not found"


def test_empty_prompt_is_rejected(backend_client: TestClient) -> None:
    assert backend_client.post("/generate", json={"prompt": ""}).status_code == 422
    assert backend_client.post("/summarize", json={}).status_code == 422
    assert backend_client.post("/multimodal", json={"prompt": "no image"}).status_code == 422


def test_pending_task_has_no_result_or_error() -> None:
    app = create_app(settings_override=Settings(job_delay_s=30.0))
    with TestClient(app) as client:
        task_id = client.post("/generate", json={"prompt": "slow one"}).json()["taskID"]
        pending = client.get(f"/task/{task_id}")

    assert pending.status_code == 200
    assert pending.json() == {"id": task_id, "status": "pending"}
