"""Fixed-interval task status polling.

Terms used in this file:
- Terminal state: "completed" or "failed"; nothing changes after it.
- Outcome: the one terminal observation handed to the on_terminal callback.
- Poll handle: owns the asyncio task driving one watch() call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import quote

import httpx

from .errors import PollingTransientError, TaskFailure
from .models import TaskSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    kind: Literal["success", "failure"]
    result: Any = None
    error: str | None = None

    @classmethod
    def success(cls, result: Any) -> Outcome:
        return cls(kind="success", result=result)

    @classmethod
    def failure(cls, error: str) -> Outcome:
        return cls(kind="failure", error=error)

    @property
    def ok(self) -> bool:
        return self.kind == "success"


OnTerminal = Callable[[Outcome], None]
# Consecutive failed queries or unrecognized statuses tolerated before giving up.
DEFAULT_MAX_TRANSIENT_ERRORS = 5
FAILED_WITHOUT_MESSAGE = "Task failed without an error message"


class PollHandle:
    """Owned handle for one watched task.

    The poller disposes the handle itself once the outcome is delivered;
    close() exists for tearing the whole console down.
    """

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        self.queries = 0
        self.outcome: Outcome | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait(self) -> Outcome | None:
        """Wait until polling stops; returns None if the handle was closed first."""
        if self._task is None:
            return self.outcome
        await asyncio.wait({self._task})
        if not self._task.cancelled() and self._task.exception() is not None:
            raise self._task.exception()
        return self.outcome

    async def result(self) -> Any:
        """Wait for the outcome and unwrap it, raising TaskFailure on failure."""
        outcome = await self.wait()
        if outcome is None:
            raise TaskFailure(self.task_id, "Polling stopped before the task finished")
        if not outcome.ok:
            raise TaskFailure(self.task_id, outcome.error or "Task failed")
        return outcome.result

    def close(self) -> None:
        if self._task is not None and not self._task.done():
            logger.info("poll event=closed task_id=%s queries=%d", self.task_id, self.queries)
            self._task.cancel()


class TaskPoller:
    """Query GET /task/{taskID} every interval until the task leaves pending."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        interval_s: float = 2.0,
        max_transient_errors: int | None = DEFAULT_MAX_TRANSIENT_ERRORS,
        timeout_s: float | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.client = client
        self.interval_s = interval_s
        self.max_transient_errors = max_transient_errors
        self.timeout_s = timeout_s
        self._tasks: set[asyncio.Task[None]] = set()

    def watch(self, task_id: str, on_terminal: OnTerminal) -> PollHandle:
        handle = PollHandle(task_id)
        handle._task = asyncio.create_task(
            self._run(handle, on_terminal),
            name=f"poll-{task_id}",
        )
        self._tasks.add(handle._task)
        handle._task.add_done_callback(self._tasks.discard)
        logger.info("poll event=start task_id=%s interval_s=%s", task_id, self.interval_s)
        return handle

    async def query(self, task_id: str) -> TaskSnapshot:
        try:
            response = await self.client.get(f"/task/{quote(task_id, safe='')}")
            response.raise_for_status()
            return TaskSnapshot.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise PollingTransientError(task_id, str(exc) or type(exc).__name__) from exc

    async def _run(self, handle: PollHandle, on_terminal: OnTerminal) -> None:
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        consecutive_errors = 0

        while True:
            await asyncio.sleep(self.interval_s)
            handle.queries += 1
            outcome = None
            reason = None
            try:
                snapshot = await self.query(handle.task_id)
            except PollingTransientError as exc:
                reason = str(exc)
                logger.warning(
                    "poll event=query_failed task_id=%s attempt=%d reason=%s",
                    handle.task_id,
                    handle.queries,
                    exc,
                )
            else:
                outcome = self._terminal_outcome(handle.task_id, snapshot)
                if outcome is None and snapshot.status != "pending":
                    reason = f"unrecognized status {snapshot.status!r}"
                    logger.warning(
                        "poll event=unknown_status task_id=%s attempt=%d status=%s",
                        handle.task_id,
                        handle.queries,
                        snapshot.status,
                    )

            if reason is None:
                consecutive_errors = 0
            else:
                consecutive_errors += 1
                if (
                    self.max_transient_errors is not None
                    and consecutive_errors >= self.max_transient_errors
                ):
                    outcome = Outcome.failure(
                        f"Status polling failed {consecutive_errors} times in a row: {reason}"
                    )

            if outcome is None and self.timeout_s is not None:
                if loop.time() - started_at >= self.timeout_s:
                    outcome = Outcome.failure(
                        f"Task {handle.task_id} did not finish within {self.timeout_s:g}s"
                    )
            if outcome is not None:
                break

        handle.outcome = outcome
        logger.info(
            "poll event=terminal task_id=%s kind=%s queries=%d",
            handle.task_id,
            outcome.kind,
            handle.queries,
        )
        on_terminal(outcome)

    @staticmethod
    def _terminal_outcome(task_id: str, snapshot: TaskSnapshot) -> Outcome | None:
        if not snapshot.is_terminal:
            return None
        if snapshot.status == "completed":
            return Outcome.success(snapshot.result)
        failure = TaskFailure(task_id, snapshot.error or FAILED_WITHOUT_MESSAGE)
        return Outcome.failure(str(failure))
