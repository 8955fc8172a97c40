"""Pydantic models shared by the client, the reference backend and the CLI.

Terms used in this file:
- Task snapshot: one observation of a task returned by GET /task/{taskID}.
- Request model: a job body sent to one backend operation.
- taskID: the wire name of the task identifier; Python code uses task_id.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Task lifecycle states defined by the job API.
TaskStatus = Literal["pending", "completed", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class PromptRequest(FrozenModel):
    """Body for /generate and /chat."""

    prompt: str = Field(min_length=1)


class ImagePromptRequest(FrozenModel):
    """Body for /multimodal and /steganography."""

    prompt: str = Field(min_length=1)
    # Base64 text, no data-URI prefix.
    image: str = Field(min_length=1)


class SummarizeRequest(FrozenModel):
    """Body for /summarize."""

    data: str = Field(min_length=1)


class SubmitResponse(BaseModel):
    """Deferred job acknowledgement."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskID")


class TaskSnapshot(BaseModel):
    """Client view of GET /task/{taskID}.

    status is a plain string here so that values outside TaskStatus still
    parse; the poller treats them as non-terminal.
    """

    status: str
    result: Any = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TaskRecord(BaseModel):
    """Backend-side task record, serialized as the /task/{taskID} body."""

    id: str
    status: TaskStatus = "pending"
    result: Any = None
    error: str | None = None
