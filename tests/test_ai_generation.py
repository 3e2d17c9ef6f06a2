# tests/test_ai_generation.py

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from geoquest.api.routers.ai import get_question_generator
from geoquest.app import app
from geoquest.core.database import session_scope
from geoquest.core.errors import NotFound, UpstreamError
from geoquest.models import TaskStatus
from geoquest.services.ai_generation import parse_generated_questions, run_generation_task
from geoquest.services.providers import ProviderStatusCache
from geoquest.services.questions import list_questions
from geoquest.services.tasks import cancel_task, delete_task, get_task, submit_task


def _generated(text: str = "Hur högt är Kebnekaise?") -> Dict[str, Any]:
    return {
        "correctOption": 1,
        "difficulty": "medium",
        "categories": ["Geografi"],
        "languages": {
            "sv": {"text": text, "options": ["1 500 m", "2 100 m", "3 000 m", "900 m"]},
            "en": {"text": "How tall is Kebnekaise?", "options": ["1,500 m", "2,100 m", "3,000 m", "900 m"]},
        },
    }


class FakeGenerator:
    provider = "fake"
    model = "fake-1"

    def __init__(self, questions: Optional[List[Dict[str, Any]]] = None, error: Optional[str] = None):
        self.questions = questions if questions is not None else [_generated()]
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, *, amount, category, difficulty):
        self.calls.append({"amount": amount, "category": category, "difficulty": difficulty})
        if self.error:
            raise UpstreamError(self.error)
        return self.questions


class CancellingGenerator(FakeGenerator):
    """Cancels its own task while the provider call is in flight."""

    def __init__(self, task_id: str):
        super().__init__()
        self.task_id = task_id

    async def generate(self, *, amount, category, difficulty):
        with session_scope() as s:
            cancel_task(s, self.task_id)
        return self.questions


class DeletingGenerator(FakeGenerator):
    """Deletes its own task while the provider call is in flight."""

    def __init__(self, task_id: str):
        super().__init__()
        self.task_id = task_id

    async def generate(self, *, amount, category, difficulty):
        with session_scope() as s:
            delete_task(s, self.task_id)
        return self.questions


class CrashingGenerator(FakeGenerator):
    async def generate(self, *, amount, category, difficulty):
        raise RuntimeError("boom")


def _new_task() -> str:
    with session_scope() as s:
        return submit_task(s, task_type="generation", description="test").id


def _status(task_id: str) -> TaskStatus:
    with session_scope() as s:
        return get_task(s, task_id).status


def _question_count() -> int:
    with session_scope() as s:
        return len(list_questions(s))


def test_generate_endpoint_runs_job(client: TestClient) -> None:
    fake = FakeGenerator(questions=[_generated(), _generated("Vilken är Sveriges längsta älv?")])
    app.dependency_overrides[get_question_generator] = lambda: fake

    r = client.post(
        "/generateAIQuestions", json={"amount": 2, "category": "Geografi", "difficulty": "easy"}
    )

    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    assert fake.calls == [{"amount": 2, "category": "Geografi", "difficulty": "easy"}]

    task = client.get("/getTask", params={"taskId": body["taskId"]}).json()["task"]
    assert task["taskType"] == "generation"
    assert task["status"] == "completed"
    assert task["progress"] == 100
    assert task["result"]["count"] == 2
    assert task["result"]["provider"] == "fake"

    questions = client.get("/listQuestions").json()["questions"]
    assert sorted(q["id"] for q in questions) == sorted(task["result"]["ids"])


@pytest.mark.parametrize("body", [{"amount": 0}, {"amount": 51}, {"difficulty": "brutal"}])
def test_generate_endpoint_validates(client: TestClient, body: Dict[str, Any]) -> None:
    app.dependency_overrides[get_question_generator] = lambda: FakeGenerator()
    r = client.post("/generateAIQuestions", json=body)
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_cancel_during_generation_inserts_nothing() -> None:
    task_id = _new_task()

    await run_generation_task(task_id, CancellingGenerator(task_id), amount=1)

    assert _status(task_id) == TaskStatus.CANCELLED
    assert _question_count() == 0


@pytest.mark.asyncio
async def test_upstream_failure_fails_task() -> None:
    task_id = _new_task()

    await run_generation_task(task_id, FakeGenerator(error="quota exceeded"), amount=3)

    with session_scope() as s:
        task = get_task(s, task_id)
        assert task.status == TaskStatus.FAILED
        assert task.error == "quota exceeded"
    assert _question_count() == 0


@pytest.mark.asyncio
async def test_already_cancelled_task_is_left_alone() -> None:
    task_id = _new_task()
    with session_scope() as s:
        cancel_task(s, task_id)
    fake = FakeGenerator()

    await run_generation_task(task_id, fake, amount=1)

    assert fake.calls == []
    assert _status(task_id) == TaskStatus.CANCELLED


def _completion(content: Any) -> Dict[str, Any]:
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"choices": [{"message": {"content": content}}]}


def test_parse_generated_questions_drops_invalid_items() -> None:
    broken = {"correctOption": 9, "languages": {"sv": {"text": "?", "options": ["a", "b"]}}}
    questions = parse_generated_questions(
        _completion({"questions": [_generated(), broken]}), provider="openai", model="gpt-4o-mini"
    )

    assert len(questions) == 1
    assert questions[0]["aiGenerated"] is True
    assert questions[0]["aiGenerationModel"] == "gpt-4o-mini"
    assert questions[0]["createdBy"] == "ai:openai"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        _completion("not json"),
        _completion({"questions": "nope"}),
        _completion({"questions": [{"languages": {}}]}),
    ],
)
def test_parse_generated_questions_errors(payload: Dict[str, Any]) -> None:
    with pytest.raises(UpstreamError):
        parse_generated_questions(payload, provider="openai", model="m")


def test_provider_status_cache_expires() -> None:
    now = [1000.0]
    loads = []

    def loader():
        loads.append(now[0])
        return {"openai": {"available": len(loads) > 1}}

    cache = ProviderStatusCache(loader, ttl_seconds=120, clock=lambda: now[0])
    assert cache.is_stale()

    assert cache.get()["openai"]["available"] is False
    now[0] += 60
    assert cache.get()["openai"]["available"] is False
    assert len(loads) == 1

    now[0] += 61
    assert cache.is_stale()
    assert cache.get()["openai"]["available"] is True
    assert len(loads) == 2

    cache.get(force_refresh=True)
    assert len(loads) == 3

    cache.clear()
    assert cache.value is None and cache.is_stale()


def test_ai_status_endpoint(client: TestClient) -> None:
    providers = client.get("/getAIStatus", params={"refresh": True}).json()["providers"]
    assert set(providers) == {"openai", "gemini", "anthropic", "mistral"}
    for status in providers.values():
        assert isinstance(status["available"], bool)
        assert status["models"]


@pytest.mark.asyncio
async def test_task_deleted_during_generation_stops_quietly() -> None:
    task_id = _new_task()

    await run_generation_task(task_id, DeletingGenerator(task_id), amount=1)

    with session_scope() as s:
        with pytest.raises(NotFound):
            get_task(s, task_id)
    assert _question_count() == 0


@pytest.mark.asyncio
async def test_unexpected_error_fails_task() -> None:
    task_id = _new_task()

    await run_generation_task(task_id, CrashingGenerator(), amount=1)

    with session_scope() as s:
        task = get_task(s, task_id)
        assert task.status == TaskStatus.FAILED
        assert task.error == "Unexpected error: boom"
