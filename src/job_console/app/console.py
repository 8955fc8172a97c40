from __future__ import annotations

import logging
from types import TracebackType

import httpx

from .dispatcher import OPERATIONS, Dispatcher
from .encoder import BinarySource
from .poller import PollHandle, TaskPoller
from .renderer import OutputSurface, SingleSlotSurface, TranscriptSurface
from .settings import Settings, get_settings
from .submitter import JobSubmitter

logger = logging.getLogger(__name__)


class Console:
    """All five operations sharing one HTTP client and one poller.

    Each operation owns its surface. Leaving the context closes any poll
    handle still running, then the HTTP client.
    """

    def __init__(self, client: httpx.AsyncClient, *, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.client = client
        self.submitter = JobSubmitter(client)
        self.poller = TaskPoller(
            client,
            interval_s=settings.poll_interval_s,
            max_transient_errors=settings.max_transient_errors,
            timeout_s=settings.poll_timeout_s,
        )
        self.surfaces: dict[str, OutputSurface] = {}
        self.dispatchers: dict[str, Dispatcher] = {}
        for name, spec in OPERATIONS.items():
            surface: OutputSurface
            if spec.mode == "transcript":
                surface = TranscriptSurface(name=name)
            else:
                surface = SingleSlotSurface(name=name)
            self.surfaces[name] = surface
            self.dispatchers[name] = Dispatcher(
                spec,
                submitter=self.submitter,
                poller=self.poller,
                surface=surface,
            )
        self._handles: list[PollHandle] = []

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Console:
        settings = settings or get_settings()
        client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/"),
            timeout=settings.request_timeout_s,
        )
        return cls(client, settings=settings)

    async def dispatch(
        self,
        operation: str,
        text: str,
        image: BinarySource | None = None,
    ) -> PollHandle | None:
        dispatcher = self.dispatchers.get(operation)
        if dispatcher is None:
            raise KeyError(f"Unknown operation: {operation}")
        handle = await dispatcher.dispatch(text, image=image)
        if handle is not None:
            self._handles = [item for item in self._handles if item.active]
            self._handles.append(handle)
        return handle

    @property
    def active_handles(self) -> list[PollHandle]:
        return [handle for handle in self._handles if handle.active]

    async def aclose(self) -> None:
        for handle in self.active_handles:
            handle.close()
        for handle in self._handles:
            await handle.wait()
        self._handles.clear()
        await self.client.aclose()
        logger.info("console event=closed")

    async def __aenter__(self) -> Console:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
