"""AI question generation and the background job that runs it."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

import httpx
from starlette.concurrency import run_in_threadpool

from ..core import config
from ..core.database import session_scope
from ..core.errors import InvalidTransition, NotFound, UpstreamError, ValidationError
from .questions import insert_questions, validate_question_payload
from .tasks import complete_task, fail_task, get_task, mark_running, update_progress

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
MAX_QUESTIONS_PER_JOB = 50

_SYSTEM_PROMPT = (
    "You write multiple-choice quiz questions for an outdoor GPS quiz walk. "
    "Write every question in both Swedish (sv) and English (en), with exactly "
    "four options, one correct answer and a short explanation. Reply with JSON "
    'only, shaped as {"questions": [{"categories": [...], "difficulty": '
    '"easy|medium|hard", "correctOption": <0-based index>, "languages": '
    '{"sv": {"text", "options", "explanation"}, "en": {...}}}]}.'
)


class QuestionGenerator(Protocol):
    provider: str
    model: str

    async def generate(
        self, *, amount: int, category: Optional[str], difficulty: Optional[str]
    ) -> List[Dict[str, Any]]:
        ...


class OpenAIQuestionGenerator:
    """Chat-completions client that returns validated question payloads."""

    provider = "openai"

    def __init__(
        self,
        api_key: str = config.OPENAI_API_KEY,
        model: str = config.OPENAI_MODEL,
        *,
        timeout: float = 60,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def _user_prompt(self, amount: int, category: Optional[str], difficulty: Optional[str]) -> str:
        parts = [f"Generate {amount} questions."]
        if category:
            parts.append(f"All questions are about the category {category}.")
        if difficulty:
            parts.append(f"Difficulty: {difficulty}.")
        return " ".join(parts)

    async def generate(
        self, *, amount: int, category: Optional[str], difficulty: Optional[str]
    ) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise UpstreamError("OpenAI API key is not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": self._user_prompt(amount, category, difficulty)},
            ],
            "temperature": 0.8,
            "response_format": {"type": "json_object"},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(
                    OPENAI_CHAT_URL,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                r.raise_for_status()
                payload = r.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"OpenAI request failed: {exc}") from exc

        return parse_generated_questions(payload, provider=self.provider, model=self.model)


def parse_generated_questions(
    payload: Dict[str, Any], *, provider: str, model: str
) -> List[Dict[str, Any]]:
    """Pull the question list out of a chat-completions response."""

    try:
        content = payload["choices"][0]["message"]["content"]
        parsed = json.loads(content)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError("Failed to parse AI response") from exc

    raw = parsed.get("questions") if isinstance(parsed, dict) else parsed
    if not isinstance(raw, list):
        raise UpstreamError("AI response has no question list")

    questions: List[Dict[str, Any]] = []
    for item in raw:
        try:
            validate_question_payload(item)
        except ValidationError as exc:
            logger.info("Dropping generated question: %s", exc.message)
            continue
        questions.append(
            {
                **item,
                "aiGenerated": True,
                "aiGenerationProvider": provider,
                "aiGenerationModel": model,
                "createdBy": f"ai:{provider}",
            }
        )
    if not questions:
        raise UpstreamError("No valid questions generated")
    return questions


def _in_session(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    with session_scope() as session:
        return fn(session, *args, **kwargs)


def _store_unless_cancelled(session, task_id: str, questions: List[Dict[str, Any]]):
    task = get_task(session, task_id)
    if task.status.is_terminal:
        raise InvalidTransition(f"Task {task_id} is {task.status.value}")
    return insert_questions(session, questions)


async def run_generation_task(
    task_id: str,
    generator: QuestionGenerator,
    *,
    amount: int,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
) -> None:
    """Executor for a generation task.

    Cancellation is cooperative: every write goes through the task helpers,
    which refuse to touch a terminal row, so a cancel request stops the job at
    the next step and nothing is inserted after it.
    """

    try:
        await run_in_threadpool(_in_session, mark_running, task_id)
        questions = await generator.generate(
            amount=amount, category=category, difficulty=difficulty
        )
        await run_in_threadpool(_in_session, update_progress, task_id, 50)
        ids, errors = await run_in_threadpool(
            _in_session, _store_unless_cancelled, task_id, questions
        )
        result = {"count": len(ids), "ids": ids, "provider": generator.provider}
        if errors:
            result["errors"] = errors
        await run_in_threadpool(_in_session, complete_task, task_id, result)
    except InvalidTransition as exc:
        logger.info("Generation task %s stopped: %s", task_id, exc.message)
    except NotFound:
        logger.info("Generation task %s was deleted while running", task_id)
    except UpstreamError as exc:
        await _fail_quietly(task_id, exc.message)
    except Exception as exc:
        logger.exception("Generation task %s crashed", task_id)
        await _fail_quietly(task_id, f"Unexpected error: {exc}")


async def _fail_quietly(task_id: str, message: str) -> None:
    try:
        await run_in_threadpool(_in_session, fail_task, task_id, message)
    except (InvalidTransition, NotFound):
        logger.info("Generation task %s already closed", task_id)


__all__ = [
    "MAX_QUESTIONS_PER_JOB",
    "OpenAIQuestionGenerator",
    "QuestionGenerator",
    "parse_generated_questions",
    "run_generation_task",
]
