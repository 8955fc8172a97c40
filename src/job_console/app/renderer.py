from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from .poller import Outcome

logger = logging.getLogger(__name__)

RenderMode = Literal["single-slot", "transcript"]


def format_result(result: Any) -> str:
    """Pretty-printed structured dump of a success payload."""
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def format_outcome(outcome: Outcome) -> str:
    if outcome.ok:
        return format_result(outcome.result)
    return f"Error: {outcome.error}"


class SingleSlotSurface:
    """Output region where the last write wins."""

    mode: RenderMode = "single-slot"

    def __init__(self, name: str) -> None:
        self.name = name
        self.content: str | None = None

    def replace(self, text: str) -> None:
        self.content = text

    def render_text(self) -> str:
        return self.content if self.content is not None else "No response yet."


@dataclass(frozen=True)
class TranscriptEntry:
    role: Literal["user", "bot"]
    text: str
    task_id: str | None = None

    def render_line(self) -> str:
        speaker = "You" if self.role == "user" else "Bot"
        return f"{speaker}: {self.text}"


@dataclass
class TranscriptSurface:
    """Append-only chat history."""

    name: str
    entries: list[TranscriptEntry] = field(default_factory=list)
    mode: RenderMode = field(default="transcript", init=False)

    def append(self, entry: TranscriptEntry) -> None:
        self.entries.append(entry)

    def render_text(self) -> str:
        return "\n".join(entry.render_line() for entry in self.entries)


OutputSurface = Union[SingleSlotSurface, TranscriptSurface]


def render(
    surface: OutputSurface,
    outcome: Outcome,
    mode: RenderMode,
    *,
    task_id: str | None = None,
) -> None:
    if surface.mode != mode:
        raise ValueError(
            f"Surface {surface.name!r} is {surface.mode}, cannot render in {mode} mode"
        )

    text = format_outcome(outcome)
    if isinstance(surface, TranscriptSurface):
        surface.append(TranscriptEntry(role="bot", text=text, task_id=task_id))
    else:
        surface.replace(text)
    logger.debug(
        "render event=done surface=%s mode=%s kind=%s task_id=%s",
        surface.name,
        mode,
        outcome.kind,
        task_id,
    )
