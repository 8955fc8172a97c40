from __future__ import annotations

import pytest

from job_console.app.poller import Outcome
from job_console.app.renderer import (
    SingleSlotSurface,
    TranscriptEntry,
    TranscriptSurface,
    format_outcome,
    render,
)


def test_success_is_pretty_printed_json() -> None:
    text = format_outcome(Outcome.success({"caption": "a cat", "tags": ["pet"]}))
    assert text == '{\n  "caption": "a cat",\n  "tags": [\n    "pet"\n  ]\n}'


def test_failure_is_plain_error_line() -> None:
    assert format_outcome(Outcome.failure("model crashed")) == "Error: model crashed"


def test_single_slot_replaces_previous_content() -> None:
    surface = SingleSlotSurface(name="generate")
    assert surface.render_text() == "No response yet."

    render(surface, Outcome.success({"text": "first"}), "single-slot")
    render(surface, Outcome.failure("second failed"), "single-slot")

    assert surface.content == "Error: second failed"
    assert "first" not in surface.render_text()


def test_transcript_appends_without_touching_prior_entries() -> None:
    surface = TranscriptSurface(name="chat")
    surface.append(TranscriptEntry(role="user", text="hi"))

    render(surface, Outcome.success({"response": "hello"}), "transcript", task_id="t1")
    render(surface, Outcome.failure("boom"), "transcript")

    assert [entry.role for entry in surface.entries] == ["user", "bot", "bot"]
    assert surface.entries[0] == TranscriptEntry(role="user", text="hi")
    assert surface.entries[1].task_id == "t1"
    assert surface.render_text().splitlines()[0] == "You: hi"
    assert surface.render_text().endswith("Bot: Error: boom")


def test_markup_in_results_is_kept_as_plain_text() -> None:
    surface = SingleSlotSurface(name="generate")
    render(surface, Outcome.success({"text": "<script>alert(1)</script>"}), "single-slot")
    assert '"<script>alert(1)</script>"' in surface.content


def test_mode_must_match_surface() -> None:
    with pytest.raises(ValueError, match="cannot render in transcript mode"):
        render(SingleSlotSurface(name="generate"), Outcome.success({}), "transcript")
    with pytest.raises(ValueError, match="cannot render in single-slot mode"):
        render(TranscriptSurface(name="chat"), Outcome.success({}), "single-slot")
