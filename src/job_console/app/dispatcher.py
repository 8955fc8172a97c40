"""Per-operation wiring of user input to submission, polling and rendering.

Terms used in this file:
- Operation: one backend job endpoint (generate, chat, multimodal, ...).
- Dispatcher: binds one operation to one output surface.
- Text field: the request key the user's text goes into ("prompt" or "data").
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Literal

from pydantic import BaseModel

from .encoder import BinarySource, encode
from .errors import EncodingError, SubmissionError
from .models import ImagePromptRequest, PromptRequest, SummarizeRequest
from .poller import Outcome, PollHandle, TaskPoller
from .renderer import OutputSurface, RenderMode, TranscriptEntry, TranscriptSurface, render
from .submitter import Immediate, JobSubmitter

logger = logging.getLogger(__name__)

OperationName = Literal["generate", "chat", "multimodal", "steganography", "summarize"]


@dataclass(frozen=True)
class OperationSpec:
    name: OperationName
    request_model: type[BaseModel]
    mode: RenderMode = "single-slot"
    takes_image: bool = False

    @property
    def text_field(self) -> str:
        return "data" if self.request_model is SummarizeRequest else "prompt"


OPERATIONS: dict[str, OperationSpec] = {
    "generate": OperationSpec(name="generate", request_model=PromptRequest),
    "chat": OperationSpec(name="chat", request_model=PromptRequest, mode="transcript"),
    "multimodal": OperationSpec(
        name="multimodal",
        request_model=ImagePromptRequest,
        takes_image=True,
    ),
    "steganography": OperationSpec(
        name="steganography",
        request_model=ImagePromptRequest,
        takes_image=True,
    ),
    "summarize": OperationSpec(name="summarize", request_model=SummarizeRequest),
}


class Dispatcher:
    """One user-facing action bound to a submitter, a poller and one surface."""

    def __init__(
        self,
        spec: OperationSpec,
        *,
        submitter: JobSubmitter,
        poller: TaskPoller,
        surface: OutputSurface,
    ) -> None:
        if surface.mode != spec.mode:
            raise ValueError(
                f"{spec.name} renders in {spec.mode} mode, got a {surface.mode} surface"
            )
        self.spec = spec
        self.submitter = submitter
        self.poller = poller
        self.surface = surface
        self.last_outcome: Outcome | None = None

    async def dispatch(self, text: str, image: BinarySource | None = None) -> PollHandle | None:
        """Run one submission; returns the poll handle when a task is being watched.

        Failures before polling starts are rendered to the surface, not raised.
        """
        if isinstance(self.surface, TranscriptSurface):
            # Shown before any network round trip.
            self.surface.append(TranscriptEntry(role="user", text=text))

        fields: dict[str, str] = {self.spec.text_field: text}
        if self.spec.takes_image:
            if image is None:
                self._render_failure("An image is required for this operation")
                return None
            try:
                fields["image"] = await encode(image)
            except EncodingError as exc:
                logger.warning(
                    "dispatch event=encoding_failed operation=%s reason=%s",
                    self.spec.name,
                    exc,
                )
                self._render_failure(str(exc))
                return None

        try:
            body = self.spec.request_model(**fields)
        except ValueError as exc:
            self._render_failure(f"Invalid {self.spec.name} request: {exc}")
            return None

        try:
            if self.spec.name == "chat":
                submission = await self.submitter.submit_chat(body)
                if isinstance(submission, Immediate):
                    self._render(Outcome.success(submission.result))
                    return None
                task_id = submission.task_id
                self.surface.append(
                    TranscriptEntry(
                        role="bot",
                        text=f"Task created with ID: {task_id}",
                        task_id=task_id,
                    )
                )
            else:
                task_id = await self.submitter.submit(self.spec.name, body)
        except SubmissionError as exc:
            self._render_failure(str(exc))
            return None

        return self.poller.watch(
            task_id,
            partial(self._render, task_id=task_id),
        )

    def _render(self, outcome: Outcome, *, task_id: str | None = None) -> None:
        render(self.surface, outcome, self.spec.mode, task_id=task_id)
        self.last_outcome = outcome

    def _render_failure(self, message: str) -> None:
        self._render(Outcome.failure(message))
