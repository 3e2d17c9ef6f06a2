"""AI generation endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlmodel import Session

from ...core import ValidationError, get_session
from ...services.ai_generation import (
    MAX_QUESTIONS_PER_JOB,
    OpenAIQuestionGenerator,
    QuestionGenerator,
    run_generation_task,
)
from ...services.questions import DIFFICULTIES
from ...services.tasks import submit_task

router = APIRouter(tags=["ai"])


def get_question_generator() -> QuestionGenerator:
    """Dependency returning the configured question generator."""

    return OpenAIQuestionGenerator()


@router.get("/getAIStatus")
def get_ai_status(request: Request, refresh: bool = False):
    """Which AI providers are configured, cached for a short while."""

    cache = request.app.state.provider_status
    return {"providers": cache.get(force_refresh=refresh)}


@router.post("/generateAIQuestions")
def generate_ai_questions(
    body: Dict[str, Any],
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    generator: QuestionGenerator = Depends(get_question_generator),
):
    """Queue a generation job and return its task id."""

    try:
        amount = int(body.get("amount", 10))
    except (TypeError, ValueError) as exc:
        raise ValidationError("amount must be an integer") from exc
    if not 1 <= amount <= MAX_QUESTIONS_PER_JOB:
        raise ValidationError(f"amount must be between 1 and {MAX_QUESTIONS_PER_JOB}")

    category = body.get("category") or None
    difficulty = body.get("difficulty") or None
    if difficulty is not None and difficulty not in DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of {sorted(DIFFICULTIES)}")

    params = {"amount": amount, "category": category, "difficulty": difficulty}
    task = submit_task(
        session,
        task_type="generation",
        user_id=body.get("userId"),
        label="AI question generation",
        description=f"Generate {amount} questions with {generator.provider}",
        payload={**params, "provider": generator.provider},
    )
    background_tasks.add_task(run_generation_task, task.id, generator, **params)
    return {"success": True, "taskId": task.id, "message": "Generation queued"}


__all__ = ["get_question_generator", "router"]
