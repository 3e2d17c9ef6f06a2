"""Background task endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from ...core import (
    TASK_POLL_INTERVAL_SEC,
    TASK_STREAM_MAX_ATTEMPTS,
    ValidationError,
    get_session,
)
from ...services.task_stream import task_event_stream
from ...services.tasks import (
    bulk_cancel_tasks,
    bulk_delete_tasks,
    cancel_task,
    delete_old_tasks,
    delete_task,
    get_task,
    list_tasks,
    mark_stale_tasks,
    task_to_dict,
)

router = APIRouter(tags=["tasks"])


def _task_id(body: Dict[str, Any]) -> str:
    task_id = body.get("taskId")
    if not task_id or not isinstance(task_id, str):
        raise ValidationError("taskId is required")
    return task_id


def _task_ids(body: Dict[str, Any]) -> List[str]:
    task_ids = body.get("taskIds")
    if not isinstance(task_ids, list) or not task_ids:
        raise ValidationError("taskIds array is required")
    if not all(isinstance(item, str) and item for item in task_ids):
        raise ValidationError("taskIds must contain non-empty strings")
    return task_ids


@router.post("/stopTask")
def stop_task(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Cancel a task that has not finished yet."""

    task_id = _task_id(body)
    cancel_task(session, task_id)
    return {"success": True, "message": "Task cancelled successfully", "taskId": task_id}


@router.post("/bulkStopTasks")
def bulk_stop_tasks(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Cancel several tasks; failures are reported per id."""

    task_ids = _task_ids(body)
    stopped, errors = bulk_cancel_tasks(session, task_ids)
    response: Dict[str, Any] = {"success": True, "stopped": stopped, "total": len(task_ids)}
    if errors:
        response["errors"] = errors
    return response


@router.post("/deleteTask")
def delete_one_task(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Permanently delete a task, whatever its status."""

    task_id = _task_id(body)
    delete_task(session, task_id)
    return {"success": True, "message": "Task deleted successfully", "taskId": task_id}


@router.post("/bulkDeleteTasks")
def bulk_delete(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Delete several tasks at once."""

    task_ids = _task_ids(body)
    deleted = bulk_delete_tasks(session, task_ids)
    return {"success": True, "deleted": deleted, "total": len(task_ids)}


@router.get("/getTask")
def get_one_task(taskId: str = Query(...), session: Session = Depends(get_session)):
    """One-shot read of a task's current state."""

    return {"success": True, "task": task_to_dict(get_task(session, taskId))}


@router.get("/getBackgroundTasks")
def get_background_tasks(
    userId: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    session: Session = Depends(get_session),
):
    """List tasks, newest first, optionally for one user."""

    tasks = [task_to_dict(task) for task in list_tasks(session, user_id=userId, limit=limit)]
    return {"success": True, "tasks": tasks, "count": len(tasks)}


@router.post("/cleanupStuckTasks")
def cleanup_stuck_tasks(session: Session = Depends(get_session)):
    """Fail pending or running tasks that stopped reporting."""

    failed = mark_stale_tasks(session)
    return {"success": True, "cleaned": len(failed), "taskIds": failed}


@router.post("/deleteOldTasks")
def remove_old_tasks(
    hours: int = Query(24, ge=1), session: Session = Depends(get_session)
):
    """Delete completed and failed tasks older than ``hours``."""

    deleted = delete_old_tasks(session, hours=hours)
    return {"success": True, "deleted": deleted, "hoursOld": hours}


@router.get("/subscribeToTask")
async def subscribe_to_task(taskId: str = Query(...)) -> StreamingResponse:
    """Stream task updates as Server-Sent Events."""

    return StreamingResponse(
        task_event_stream(
            taskId,
            interval=TASK_POLL_INTERVAL_SEC,
            max_attempts=TASK_STREAM_MAX_ATTEMPTS,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


__all__ = ["router"]
