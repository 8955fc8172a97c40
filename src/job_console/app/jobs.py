"""In-memory job queue behind the reference backend.

Terms used in this file:
- Task store: thread-safe map of task id to TaskRecord.
- Job runner: starts one asyncio task per accepted job and records its outcome.
- Handler: a deterministic function turning a validated request into a result.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import threading
import uuid
from collections.abc import Callable
from typing import Any

from .models import ImagePromptRequest, PromptRequest, SummarizeRequest, TaskRecord

logger = logging.getLogger(__name__)

HELP_TEXT = "Commands: /help, /run [prompt]"
# Four-byte big-endian length prefix ahead of the embedded message.
_LENGTH_PREFIX_BYTES = 4


class InMemoryTaskStore:
    """Thread-safe task records; a record leaves pending at most once."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskRecord] = {}
        self._lock = threading.Lock()

    def create(self) -> TaskRecord:
        record = TaskRecord(id=str(uuid.uuid4()))
        with self._lock:
            self._tasks[record.id] = record
        return record

    def get(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            record = self._tasks.get(task_id)
        return record.model_copy(deep=True) if record else None

    def complete(self, task_id: str, result: Any) -> TaskRecord:
        return self._finish(task_id, {"status": "completed", "result": result})

    def fail(self, task_id: str, error: str) -> TaskRecord:
        return self._finish(task_id, {"status": "failed", "error": error})

    def _finish(self, task_id: str, update: dict[str, Any]) -> TaskRecord:
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise KeyError(f"Task {task_id} does not exist")
            if current.status != "pending":
                raise ValueError(f"Task {task_id} is already {current.status}")
            updated = current.model_copy(update=update)
            self._tasks[task_id] = updated
        return updated


class JobRunner:
    """Runs accepted jobs on the event loop after an optional delay."""

    def __init__(self, store: InMemoryTaskStore, *, delay_s: float = 0.0) -> None:
        self.store = store
        self.delay_s = delay_s
        self._running: set[asyncio.Task[None]] = set()

    def start(self, operation: str, job: Callable[[], Any]) -> str:
        record = self.store.create()
        task = asyncio.create_task(
            self._execute(record.id, operation, job),
            name=f"job-{record.id}",
        )
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        logger.info("job event=accepted operation=%s task_id=%s", operation, record.id)
        return record.id

    async def shutdown(self) -> None:
        for task in list(self._running):
            task.cancel()
        if self._running:
            await asyncio.wait(set(self._running))

    async def _execute(self, task_id: str, operation: str, job: Callable[[], Any]) -> None:
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        try:
            result = job()
        except Exception as exc:  # noqa: BLE001
            logger.info(
                "job event=failed operation=%s task_id=%s reason=%s",
                operation,
                task_id,
                exc,
            )
            self.store.fail(task_id, f"{operation} failed: {exc}")
            return
        self.store.complete(task_id, result)
        logger.info("job event=completed operation=%s task_id=%s", operation, task_id)


def parse_command(prompt: str) -> tuple[str, str]:
    """Split a slash command into (command, remaining text)."""
    parts = prompt.split()
    if not parts:
        return "", ""
    command = parts[0]
    return command, prompt.strip()[len(command) :].strip()


def extract_entities(text: str) -> list[str]:
    matches = re.findall(r"\b[A-Z][a-zA-Z0-9_-]*\b", text)
    seen: set[str] = set()
    ordered_entities: list[str] = []
    for entity in matches:
        if entity in seen:
            continue
        seen.add(entity)
        ordered_entities.append(entity)
    return ordered_entities


def generate_text(payload: PromptRequest) -> dict[str, Any]:
    return {
        "text": f"Generated response for: {payload.prompt.strip()}",
        "entities": extract_entities(payload.prompt),
    }


def chat_reply(payload: PromptRequest) -> dict[str, Any]:
    return {"response": f"You said: {payload.prompt.strip()}"}


def summarize_text(payload: SummarizeRequest, *, max_words: int) -> dict[str, Any]:
    words = payload.data.split()
    summary = " ".join(words[:max_words]).strip()
    return {
        "summary": summary,
        "word_count": len(words),
        "truncated": len(words) > max_words,
    }


def describe_image(payload: ImagePromptRequest) -> dict[str, Any]:
    raw = decode_image(payload.image)
    image_format = sniff_image_format(raw)
    return {
        "caption": f"{image_format} image ({len(raw)} bytes) for prompt: {payload.prompt.strip()}",
        "format": image_format,
        "image_bytes": len(raw),
    }


def embed_message(payload: ImagePromptRequest) -> dict[str, Any]:
    """Hide the prompt in the least significant bits of the carrier bytes.

    The carrier is treated as a raw byte stream; one message bit per byte,
    preceded by a length prefix.
    """
    carrier = bytearray(decode_image(payload.image))
    message = payload.prompt.encode("utf-8")
    framed = len(message).to_bytes(_LENGTH_PREFIX_BYTES, "big") + message
    bits_needed = len(framed) * 8
    if bits_needed > len(carrier):
        raise ValueError(
            f"carrier holds {max(0, len(carrier) // 8 - _LENGTH_PREFIX_BYTES)} message bytes, "
            f"prompt needs {len(message)}"
        )
    for index in range(bits_needed):
        bit = (framed[index // 8] >> (7 - index % 8)) & 1
        carrier[index] = (carrier[index] & 0xFE) | bit
    return {
        "image": base64.b64encode(bytes(carrier)).decode("ascii"),
        "embedded_bytes": len(message),
        "carrier_bytes": len(carrier),
    }


def extract_message(carrier: bytes) -> str:
    """Read back a message written by embed_message."""

    def read_bytes(start_bit: int, count: int) -> bytes:
        out = bytearray()
        for offset in range(count):
            value = 0
            for bit_index in range(8):
                value = (value << 1) | (carrier[start_bit + offset * 8 + bit_index] & 1)
            out.append(value)
        return bytes(out)

    if len(carrier) < _LENGTH_PREFIX_BYTES * 8:
        raise ValueError("carrier is too small to hold a message")
    length = int.from_bytes(read_bytes(0, _LENGTH_PREFIX_BYTES), "big")
    if (length + _LENGTH_PREFIX_BYTES) * 8 > len(carrier):
        raise ValueError("carrier does not contain an embedded message")
    return read_bytes(_LENGTH_PREFIX_BYTES * 8, length).decode("utf-8")


def decode_image(image: str) -> bytes:
    try:
        raw = base64.b64decode(image, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("image is not valid base64") from exc
    if not raw:
        raise ValueError("image is empty")
    return raw


def sniff_image_format(raw: bytes) -> str:
    if raw.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if raw.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if raw.startswith((b"GIF87a", b"GIF89a")):
        return "gif"
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "webp"
    if raw.startswith(b"BM"):
        return "bmp"
    return "unknown"
