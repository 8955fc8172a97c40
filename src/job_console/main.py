"""FastAPI application wiring for the reference job backend.

Terms used in this file:
- Job endpoint: POST route that accepts a job and answers with {"taskID": ...}.
- Inline answer: a chat reply returned directly, without a task to poll.
- app.state: holds the task store, job runner and settings for route handlers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse

from .app.jobs import (
    HELP_TEXT,
    InMemoryTaskStore,
    JobRunner,
    chat_reply,
    describe_image,
    embed_message,
    generate_text,
    parse_command,
    summarize_text,
)
from .app.models import (
    ImagePromptRequest,
    PromptRequest,
    SubmitResponse,
    SummarizeRequest,
    TaskRecord,
)
from .app.settings import Settings, get_settings
from .app.ui import render_homepage

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    store: InMemoryTaskStore | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    """Application factory; tests build a fresh app per case."""
    settings = settings_override or get_settings()
    task_store = store or InMemoryTaskStore()
    runner = JobRunner(task_store, delay_s=settings.job_delay_s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("backend event=start app_name=%s version=%s", settings.app_name, VERSION)
        yield
        await runner.shutdown()

    app = FastAPI(title=settings.app_name, version=VERSION, lifespan=lifespan)
    app.state.store = task_store
    app.state.runner = runner
    app.state.settings = settings

    def _accepted(task_id: str) -> dict[str, str]:
        return SubmitResponse(task_id=task_id).model_dump(by_alias=True)

    @app.get("/health")
    @app.get("/healthz")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/version")
    def version() -> dict[str, str]:
        return {"version": VERSION}

    @app.get("/", response_class=HTMLResponse)
    def home() -> str:
        return render_homepage(
            app_name=settings.app_name,
            poll_interval_s=settings.poll_interval_s,
            max_poll_anomalies=settings.max_transient_errors,
        )

    # Job endpoints are async so the runner can schedule work on the serving loop.
    @app.post("/generate")
    async def generate(payload: PromptRequest, request: Request) -> dict[str, str]:
        task_id = request.app.state.runner.start("generate", lambda: generate_text(payload))
        return _accepted(task_id)

    @app.post("/chat")
    async def chat(payload: PromptRequest, request: Request) -> dict[str, Any]:
        prompt = payload.prompt
        if prompt.startswith("/"):
            command, rest = parse_command(prompt)
            if command == "/help":
                return {"response": HELP_TEXT}
            if command != "/run":
                return {"response": f"Unknown command: {command}"}
            if not rest:
                return {"response": "Usage: /run [prompt]"}
            prompt = rest
        job_payload = PromptRequest(prompt=prompt)
        task_id = request.app.state.runner.start("chat", lambda: chat_reply(job_payload))
        return _accepted(task_id)

    @app.post("/multimodal")
    async def multimodal(payload: ImagePromptRequest, request: Request) -> dict[str, str]:
        task_id = request.app.state.runner.start("multimodal", lambda: describe_image(payload))
        return _accepted(task_id)

    @app.post("/steganography")
    async def steganography(payload: ImagePromptRequest, request: Request) -> dict[str, str]:
        task_id = request.app.state.runner.start("steganography", lambda: embed_message(payload))
        return _accepted(task_id)

    @app.post("/summarize")
    async def summarize(payload: SummarizeRequest, request: Request) -> dict[str, str]:
        max_words = settings.summary_max_words
        task_id = request.app.state.runner.start(
            "summarize",
            lambda: summarize_text(payload, max_words=max_words),
        )
        return _accepted(task_id)

    @app.get("/task/{task_id}", response_model=TaskRecord, response_model_exclude_none=True)
    def get_task(task_id: str, request: Request) -> TaskRecord:
        record = request.app.state.store.get(task_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return record

    return app


# Module-level app for `uvicorn job_console.main:app`.
app = create_app()
