from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from job_console.app.settings import Settings
from job_console.main import create_app

FAST_INTERVAL_S = 0.01


class ScriptedBackend:
    """Test-only job API double driven by a script of status responses.

    Each GET /task/{id} consumes the next scripted item; the last item repeats
    once the script runs out. An item is a JSON dict, an httpx.Response, or an
    exception to raise from the transport.
    """

    def __init__(
        self,
        *,
        submit_response: dict[str, Any] | httpx.Response | None = None,
        statuses: list[Any] | None = None,
        on_submit: Callable[[httpx.Request], None] | None = None,
    ) -> None:
        self.submit_response = submit_response if submit_response is not None else {"taskID": "t1"}
        self.statuses = list(statuses or [{"status": "pending"}])
        self.on_submit = on_submit
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path.startswith("/task/"):
            item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            if isinstance(item, Exception):
                raise item
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, json=item)

        if self.on_submit is not None:
            self.on_submit(request)
        if isinstance(self.submit_response, httpx.Response):
            return self.submit_response
        return httpx.Response(200, json=self.submit_response)

    @property
    def status_queries(self) -> list[httpx.Request]:
        return [item for item in self.requests if item.url.path.startswith("/task/")]

    @property
    def submissions(self) -> list[httpx.Request]:
        return [item for item in self.requests if item.method == "POST"]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="http://backend.test",
        )


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        poll_interval_s=FAST_INTERVAL_S,
        job_delay_s=0.02,
        summary_max_words=5,
    )


@pytest.fixture
def backend_client(fast_settings: Settings) -> Iterator[TestClient]:
    app = create_app(settings_override=fast_settings)
    with TestClient(app) as test_client:
        yield test_client


def asgi_client(settings: Settings) -> httpx.AsyncClient:
    """Async client wired straight into a fresh reference backend."""
    app = create_app(settings_override=settings)
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    )


@pytest.fixture
def scripted_backend() -> type[ScriptedBackend]:
    return ScriptedBackend


@pytest.fixture
def make_asgi_client() -> Callable[[Settings], httpx.AsyncClient]:
    return asgi_client
