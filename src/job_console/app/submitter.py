from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

import httpx
from pydantic import BaseModel, ValidationError

from .errors import SubmissionError
from .models import SubmitResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deferred:
    """Backend accepted the job and will report through /task/{taskID}."""

    task_id: str


@dataclass(frozen=True)
class Immediate:
    """Backend answered inline; there is nothing to poll."""

    result: dict[str, Any]


ChatSubmission = Union[Deferred, Immediate]


class JobSubmitter:
    """Posts one job body per call to a named backend operation. No retries."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def submit(self, operation: str, body: BaseModel | dict[str, Any]) -> str:
        payload = await self._post(operation, body)
        try:
            accepted = SubmitResponse.model_validate(payload)
        except ValidationError as exc:
            raise SubmissionError(operation, "Backend response did not include a taskID") from exc
        if not accepted.task_id:
            raise SubmissionError(operation, "Backend response did not include a taskID")
        logger.info("submit event=accepted operation=%s task_id=%s", operation, accepted.task_id)
        return accepted.task_id

    async def submit_chat(self, body: BaseModel | dict[str, Any]) -> ChatSubmission:
        payload = await self._post("chat", body)
        task_id = payload.get("taskID")
        if isinstance(task_id, str) and task_id:
            logger.info("submit event=accepted operation=chat task_id=%s", task_id)
            return Deferred(task_id=task_id)
        logger.info("submit event=inline_result operation=chat")
        return Immediate(result=payload)

    async def _post(self, operation: str, body: BaseModel | dict[str, Any]) -> dict[str, Any]:
        json_body = body.model_dump() if isinstance(body, BaseModel) else dict(body)
        try:
            response = await self.client.post(f"/{operation}", json=json_body)
        except httpx.HTTPError as exc:
            logger.warning("submit event=request_failed operation=%s reason=%s", operation, exc)
            raise SubmissionError(operation, f"Request to /{operation} failed: {exc}") from exc

        if not response.is_success:
            detail = response.text.strip() or response.reason_phrase
            logger.warning(
                "submit event=rejected operation=%s status_code=%d",
                operation,
                response.status_code,
            )
            raise SubmissionError(
                operation,
                f"/{operation} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SubmissionError(operation, f"/{operation} returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise SubmissionError(operation, f"/{operation} returned a non-object JSON body")
        return payload
