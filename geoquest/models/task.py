"""Database model for background tasks."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class TaskStatus(str, Enum):
    """Lifecycle of a background task. Terminal states never transition."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
)


def _new_task_id() -> str:
    return uuid.uuid4().hex


class BackgroundTask(SQLModel, table=True):
    """Persisted status row for an asynchronous server-side job."""

    __tablename__ = "background_tasks"

    id: str = ORMField(default_factory=_new_task_id, primary_key=True)
    task_type: str = ORMField(default="generic", index=True)
    user_id: Optional[str] = ORMField(default=None, index=True)
    label: Optional[str] = None
    description: str = ""
    status: TaskStatus = ORMField(default=TaskStatus.PENDING, index=True)
    progress: int = 0
    payload_json: Optional[str] = None
    result_json: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = ORMField(default_factory=utcnow, index=True)
    updated_at: datetime = ORMField(default_factory=utcnow)
    finished_at: Optional[datetime] = None


__all__ = ["BackgroundTask", "TERMINAL_STATUSES", "TaskStatus"]
