"""Background task tracker.

A task row moves ``pending -> running -> completed`` or from ``pending`` /
``running`` to ``failed`` or ``cancelled``. Terminal rows never change status
again and are the only ones with ``finished_at`` set. Executors advance the
row through the helpers below; a terminal row makes those helpers raise
:class:`InvalidTransition`, which is how an executor notices a cancel request.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from ..core.config import TASK_IDLE_TIMEOUT_SEC, TASK_TOTAL_TIMEOUT_SEC
from ..core.errors import InvalidTransition, NotFound, ValidationError
from ..core.time import as_utc, isoformat, utcnow
from ..models import TERMINAL_STATUSES, BackgroundTask, TaskStatus

logger = logging.getLogger(__name__)


def task_to_dict(task: BackgroundTask) -> Dict[str, Any]:
    """Serialise a task row to the API shape."""

    return {
        "id": task.id,
        "userId": task.user_id,
        "taskType": task.task_type,
        "status": task.status.value,
        "label": task.label,
        "description": task.description,
        "progress": task.progress,
        "payload": json.loads(task.payload_json) if task.payload_json else None,
        "result": json.loads(task.result_json) if task.result_json else None,
        "error": task.error,
        "createdAt": isoformat(task.created_at),
        "updatedAt": isoformat(task.updated_at),
        "finishedAt": isoformat(task.finished_at),
    }


def submit_task(
    session: Session,
    *,
    description: str,
    task_type: str = "generic",
    user_id: Optional[str] = None,
    label: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> BackgroundTask:
    """Insert a new pending task and return it."""

    task = BackgroundTask(
        task_type=task_type,
        user_id=user_id,
        label=label,
        description=description,
        payload_json=json.dumps(payload) if payload is not None else None,
    )
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info("Submitted task %s (%s)", task.id, task_type)
    return task


def get_task(session: Session, task_id: str) -> BackgroundTask:
    task = session.get(BackgroundTask, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


def list_tasks(
    session: Session, *, user_id: Optional[str] = None, limit: int = 100
) -> List[BackgroundTask]:
    query = select(BackgroundTask)
    if user_id:
        query = query.where(BackgroundTask.user_id == user_id)
    query = query.order_by(BackgroundTask.created_at.desc()).limit(limit)
    return list(session.exec(query).all())


def _require_open(task: BackgroundTask) -> None:
    if task.status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Cannot change task with status: {task.status.value}")


def _finish(task: BackgroundTask, status: TaskStatus) -> None:
    now = utcnow()
    task.status = status
    task.updated_at = now
    task.finished_at = now


def mark_running(session: Session, task_id: str) -> BackgroundTask:
    task = get_task(session, task_id)
    _require_open(task)
    task.status = TaskStatus.RUNNING
    task.updated_at = utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


def update_progress(session: Session, task_id: str, progress: int) -> BackgroundTask:
    """Record executor progress (clamped to 0..100); implies ``running``."""

    task = get_task(session, task_id)
    _require_open(task)
    task.status = TaskStatus.RUNNING
    task.progress = max(0, min(100, int(progress)))
    task.updated_at = utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


def complete_task(
    session: Session, task_id: str, result: Optional[Dict[str, Any]] = None
) -> BackgroundTask:
    task = get_task(session, task_id)
    _require_open(task)
    _finish(task, TaskStatus.COMPLETED)
    task.progress = 100
    task.result_json = json.dumps(result) if result is not None else None
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info("Task %s completed", task_id)
    return task


def fail_task(
    session: Session,
    task_id: str,
    error: str,
    result: Optional[Dict[str, Any]] = None,
) -> BackgroundTask:
    task = get_task(session, task_id)
    _require_open(task)
    _finish(task, TaskStatus.FAILED)
    task.error = error
    task.result_json = json.dumps(result if result is not None else {"error": error})
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.warning("Task %s failed: %s", task_id, error)
    return task


def cancel_task(session: Session, task_id: str) -> BackgroundTask:
    """Cancel a task that has not reached a terminal state."""

    task = get_task(session, task_id)
    if task.status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Cannot stop task with status: {task.status.value}")
    _finish(task, TaskStatus.CANCELLED)
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info("Task %s cancelled", task_id)
    return task


def bulk_cancel_tasks(session: Session, task_ids: Sequence[str]) -> Tuple[int, List[str]]:
    """Cancel each id independently; return the success count and per-item errors."""

    stopped = 0
    errors: List[str] = []
    for task_id in task_ids:
        try:
            cancel_task(session, task_id)
        except NotFound:
            errors.append(f"Task {task_id} not found")
        except InvalidTransition:
            task = session.get(BackgroundTask, task_id)
            status = task.status.value if task else "finished"
            errors.append(f"Task {task_id} already {status}")
        else:
            stopped += 1
    logger.info("Bulk stop: %s stopped, %s errors", stopped, len(errors))
    return stopped, errors


def delete_task(session: Session, task_id: str) -> None:
    """Remove a task regardless of its status."""

    task = get_task(session, task_id)
    session.delete(task)
    session.commit()
    logger.info("Task %s deleted", task_id)


def bulk_delete_tasks(session: Session, task_ids: Sequence[str]) -> int:
    """Remove every existing task in ``task_ids`` in one transaction.

    Returns how many rows were actually removed; unknown ids are ignored.
    """

    if not task_ids:
        return 0
    rows = session.exec(
        select(BackgroundTask).where(BackgroundTask.id.in_(list(task_ids)))
    ).all()
    for row in rows:
        session.delete(row)
    session.commit()
    logger.info("Bulk delete: %s of %s tasks removed", len(rows), len(task_ids))
    return len(rows)


def mark_stale_tasks(
    session: Session,
    *,
    idle_timeout_sec: int = TASK_IDLE_TIMEOUT_SEC,
    total_timeout_sec: int = TASK_TOTAL_TIMEOUT_SEC,
) -> List[str]:
    """Fail open tasks whose executor went quiet or ran too long."""

    now = utcnow()
    rows = session.exec(
        select(BackgroundTask).where(
            BackgroundTask.status.in_([TaskStatus.PENDING, TaskStatus.RUNNING])
        )
    ).all()

    failed: List[str] = []
    for task in rows:
        idle = now - (as_utc(task.updated_at) or as_utc(task.created_at))
        total = now - as_utc(task.created_at)
        if idle > timedelta(seconds=idle_timeout_sec):
            reason = f"Watchdog timeout: no activity for {int(idle.total_seconds())}s"
        elif total > timedelta(seconds=total_timeout_sec):
            reason = f"Watchdog timeout: total time {int(total.total_seconds())}s"
        else:
            continue
        _finish(task, TaskStatus.FAILED)
        task.error = reason
        task.result_json = json.dumps(
            {
                "error": reason,
                "watchdog": {
                    "idleMs": int(idle.total_seconds() * 1000),
                    "totalMs": int(total.total_seconds() * 1000),
                    "idleLimitMs": idle_timeout_sec * 1000,
                    "totalLimitMs": total_timeout_sec * 1000,
                },
            }
        )
        session.add(task)
        failed.append(task.id)
        logger.warning("Marking stale task %s: %s", task.id, reason)

    if failed:
        session.commit()
    return failed


def delete_old_tasks(session: Session, *, hours: int = 24) -> int:
    """Delete completed and failed tasks that finished more than ``hours`` ago."""

    if hours <= 0:
        raise ValidationError("hours must be positive")
    threshold = utcnow() - timedelta(hours=hours)
    rows = session.exec(
        select(BackgroundTask).where(
            BackgroundTask.status.in_([TaskStatus.COMPLETED, TaskStatus.FAILED])
        )
    ).all()
    old = [row for row in rows if row.finished_at and as_utc(row.finished_at) < threshold]
    for row in old:
        session.delete(row)
    session.commit()
    logger.info("Deleted %s tasks older than %sh", len(old), hours)
    return len(old)


__all__ = [
    "bulk_cancel_tasks",
    "bulk_delete_tasks",
    "cancel_task",
    "complete_task",
    "delete_old_tasks",
    "delete_task",
    "fail_task",
    "get_task",
    "list_tasks",
    "mark_running",
    "mark_stale_tasks",
    "submit_task",
    "task_to_dict",
    "update_progress",
]
