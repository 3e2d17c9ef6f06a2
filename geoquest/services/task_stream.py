"""Server-Sent Events feed for a single background task."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from ..core.config import TASK_POLL_INTERVAL_SEC, TASK_STREAM_MAX_ATTEMPTS
from ..core.database import session_scope
from ..models import BackgroundTask, TaskStatus
from .tasks import task_to_dict

logger = logging.getLogger(__name__)


def sse_frame(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data)}\n\n"


def _read_task(task_id: str) -> Optional[Dict[str, Any]]:
    with session_scope() as session:
        task = session.get(BackgroundTask, task_id)
        return task_to_dict(task) if task else None


async def task_event_stream(
    task_id: str,
    *,
    interval: float = TASK_POLL_INTERVAL_SEC,
    max_attempts: int = TASK_STREAM_MAX_ATTEMPTS,
) -> AsyncGenerator[str, None]:
    """Poll a task row and yield SSE frames until it settles.

    The first read happens immediately, then one read per ``interval``.
    ``update`` is sent only when ``(status, progress)`` differs from the last
    forwarded frame. The stream ends on ``completed`` or ``failed``, after a
    missing-task ``error``, or with ``timeout`` once ``max_attempts`` ticks
    have elapsed. ``cancelled`` is forwarded as an ``update`` and polling
    continues. A failed or unreadable read is logged and retried on the next
    tick.
    """

    last_signature = None
    attempts = 0

    while True:
        try:
            task = await run_in_threadpool(_read_task, task_id)
        except (SQLAlchemyError, ValueError):
            logger.warning("Task %s poll failed; retrying", task_id, exc_info=True)
        else:
            if task is None:
                yield sse_frame({"type": "error", "error": "Task not found"})
                return

            status = task["status"]
            if status == TaskStatus.COMPLETED.value:
                yield sse_frame({"type": "complete", "task": task})
                return
            if status == TaskStatus.FAILED.value:
                yield sse_frame(
                    {"type": "error", "error": task["error"] or f"Task {status}", "task": task}
                )
                return

            signature = (status, task["progress"])
            if signature != last_signature:
                last_signature = signature
                yield sse_frame({"type": "update", "task": task})

        await asyncio.sleep(interval)
        attempts += 1
        if attempts >= max_attempts:
            yield sse_frame({"type": "timeout", "error": "Task monitoring timeout"})
            return


__all__ = ["sse_frame", "task_event_stream"]
