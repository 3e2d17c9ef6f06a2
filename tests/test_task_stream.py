# tests/test_task_stream.py

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from geoquest.services import task_stream
from geoquest.services.task_stream import task_event_stream
from geoquest.services.tasks import cancel_task, mark_running, submit_task


async def _collect(task_id: str, **kwargs: Any) -> List[Dict[str, Any]]:
    frames = []
    async for frame in task_event_stream(task_id, **kwargs):
        assert frame.startswith("data: ") and frame.endswith("\n\n")
        frames.append(json.loads(frame[len("data: "):]))
    return frames


def _scripted(monkeypatch: pytest.MonkeyPatch, script: List[Any]) -> List[str]:
    """Replace the row reader with a fixed sequence of results."""

    calls: List[str] = []

    def fake_read(task_id: str) -> Optional[Dict[str, Any]]:
        calls.append(task_id)
        item = script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(task_stream, "_read_task", fake_read)
    return calls


def _row(status: str, progress: int) -> Dict[str, Any]:
    return {"id": "t1", "status": status, "progress": progress, "error": None}


@pytest.mark.asyncio
async def test_pending_task_times_out(session: Session) -> None:
    task_id = submit_task(session, description="slow").id

    events = await _collect(task_id, interval=0, max_attempts=3)

    assert [e["type"] for e in events] == ["update", "timeout"]
    assert events[0]["task"]["status"] == "pending"


@pytest.mark.asyncio
async def test_updates_are_edge_triggered(monkeypatch: pytest.MonkeyPatch) -> None:
    _scripted(
        monkeypatch,
        [
            _row("pending", 0),
            _row("pending", 0),
            _row("running", 10),
            _row("running", 10),
            _row("running", 55),
            _row("completed", 100),
        ],
    )

    events = await _collect("t1", interval=0, max_attempts=50)

    assert [e["type"] for e in events] == ["update", "update", "update", "complete"]
    assert [e["task"]["progress"] for e in events] == [0, 10, 55, 100]


@pytest.mark.asyncio
async def test_read_failures_are_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _scripted(
        monkeypatch,
        [
            OperationalError("SELECT", {}, Exception("database is locked")),
            _row("running", 20),
            OperationalError("SELECT", {}, Exception("database is locked")),
            _row("completed", 100),
        ],
    )

    events = await _collect("t1", interval=0, max_attempts=50)

    assert len(calls) == 4
    assert [e["type"] for e in events] == ["update", "complete"]


@pytest.mark.asyncio
async def test_cancelled_task_is_forwarded_as_update(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _scripted(
        monkeypatch, [_row("running", 30), _row("cancelled", 30), _row("cancelled", 30)]
    )

    events = await _collect("t1", interval=0, max_attempts=3)

    assert [e["type"] for e in events] == ["update", "update", "timeout"]
    assert events[1]["task"]["status"] == "cancelled"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_cancelled_task_in_database_keeps_polling(session: Session) -> None:
    task_id = submit_task(session, description="stopped").id
    mark_running(session, task_id)
    cancel_task(session, task_id)

    events = await _collect(task_id, interval=0, max_attempts=3)

    assert [e["type"] for e in events] == ["update", "timeout"]
    assert events[0]["task"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_unreadable_row_is_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _scripted(
        monkeypatch,
        [ValueError("Expecting value: line 1 column 1"), _row("completed", 100)],
    )

    events = await _collect("t1", interval=0, max_attempts=50)

    assert len(calls) == 2
    assert [e["type"] for e in events] == ["complete"]


@pytest.mark.asyncio
async def test_corrupted_payload_does_not_break_the_stream(session: Session) -> None:
    task = submit_task(session, description="broken")
    task.payload_json = "{not json"
    session.add(task)
    session.commit()

    events = await _collect(task.id, interval=0, max_attempts=2)

    assert [e["type"] for e in events] == ["timeout"]


@pytest.mark.asyncio
async def test_no_polling_after_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _scripted(monkeypatch, [_row("running", 1)] * 10)

    events = await _collect("t1", interval=0, max_attempts=2)

    assert events[-1]["type"] == "timeout"
    assert len(calls) == 2
