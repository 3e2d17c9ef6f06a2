"""Question bank helpers."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import ValidationError
from ..core.time import isoformat, utcnow
from ..models import Question

logger = logging.getLogger(__name__)

LANGUAGES = ("sv", "en")
DEFAULT_CATEGORIES = ["Allmänt"]
DIFFICULTIES = {"easy", "medium", "hard"}


def new_question_id() -> str:
    return f"q_{uuid.uuid4().hex[:16]}"


def _language_block(question: Question, lang: str) -> Optional[Dict[str, Any]]:
    text = getattr(question, f"question_{lang}")
    if not text:
        return None
    return {
        "text": text,
        "options": json.loads(getattr(question, f"options_{lang}_json") or "[]"),
        "explanation": getattr(question, f"explanation_{lang}") or "",
        "background": getattr(question, f"background_{lang}") or "",
    }


def question_to_dict(question: Question) -> Dict[str, Any]:
    """Serialise a question row to the bilingual API shape."""

    languages = {lang: _language_block(question, lang) for lang in LANGUAGES}
    primary = languages["sv"] or languages["en"] or {}
    categories = json.loads(question.categories_json or "[]") or list(DEFAULT_CATEGORIES)
    return {
        "id": question.id,
        "question": primary.get("text", ""),
        "options": primary.get("options", []),
        "explanation": primary.get("explanation", ""),
        "languages": languages,
        "correctOption": question.correct_option,
        "categories": categories,
        "category": categories[0],
        "ageGroups": json.loads(question.age_groups_json or "[]"),
        "targetAudience": question.target_audience,
        "difficulty": question.difficulty,
        "illustrationSvg": question.illustration_svg,
        "emoji": question.illustration_emoji or "❓",
        "aiGenerated": question.ai_generated,
        "provider": question.ai_generation_provider,
        "model": question.ai_generation_model,
        "validated": question.validated,
        "createdBy": question.created_by,
        "createdAt": isoformat(question.created_at),
        "updatedAt": isoformat(question.updated_at),
    }


def _normalise_languages(item: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    raw = item.get("languages")
    languages: Dict[str, Dict[str, Any]] = {}
    if isinstance(raw, dict):
        for lang in LANGUAGES:
            block = raw.get(lang)
            if isinstance(block, dict) and block.get("text"):
                languages[lang] = block
    elif item.get("text") or item.get("question"):
        # Legacy flat payloads are Swedish.
        languages["sv"] = {
            "text": item.get("text") or item.get("question"),
            "options": item.get("options") or [],
            "explanation": item.get("explanation") or "",
            "background": item.get("background") or "",
        }
    return languages


def validate_question_payload(item: Any) -> Dict[str, Dict[str, Any]]:
    """Check a question payload and return its language blocks.

    At least one language must be present, and ``correctOption`` must index
    within the options of every language that is present.
    """

    if not isinstance(item, dict):
        raise ValidationError("question must be an object")
    languages = _normalise_languages(item)
    if not languages:
        raise ValidationError("question needs at least one language with text")

    correct = item.get("correctOption", 0)
    if not isinstance(correct, int) or isinstance(correct, bool):
        raise ValidationError("correctOption must be an integer")

    for lang, block in languages.items():
        options = block.get("options")
        if not isinstance(options, list) or len(options) < 2:
            raise ValidationError(f"languages.{lang}.options needs at least two entries")
        if not 0 <= correct < len(options):
            raise ValidationError(f"correctOption is out of range for languages.{lang}")

    difficulty = item.get("difficulty", "medium")
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of {sorted(DIFFICULTIES)}")
    return languages


def build_question(item: Dict[str, Any], languages: Dict[str, Dict[str, Any]]) -> Question:
    now = utcnow()
    question = Question(
        id=str(item.get("id") or new_question_id()),
        correct_option=item.get("correctOption", 0),
        categories_json=json.dumps(item.get("categories") or DEFAULT_CATEGORIES),
        age_groups_json=json.dumps(item.get("ageGroups") or ["adults"]),
        target_audience=item.get("targetAudience") or "swedish",
        difficulty=item.get("difficulty") or "medium",
        illustration_svg=item.get("illustrationSvg") or item.get("illustration"),
        illustration_emoji=item.get("emoji"),
        ai_generated=bool(item.get("aiGenerated")),
        ai_generation_provider=item.get("aiGenerationProvider"),
        ai_generation_model=item.get("aiGenerationModel"),
        validated=bool(item.get("validated")),
        created_by=item.get("createdBy") or "system",
        created_at=now,
        updated_at=now,
    )
    for lang, block in languages.items():
        setattr(question, f"question_{lang}", block["text"])
        setattr(question, f"options_{lang}_json", json.dumps(block.get("options") or []))
        setattr(question, f"explanation_{lang}", block.get("explanation") or "")
        setattr(question, f"background_{lang}", block.get("background") or "")
    return question


def list_questions(session: Session) -> List[Question]:
    return list(session.exec(select(Question).order_by(Question.created_at.desc())).all())


def insert_questions(
    session: Session, items: Sequence[Any]
) -> Tuple[List[str], List[str]]:
    """Insert each item on its own; return inserted ids and per-item errors."""

    inserted: List[str] = []
    errors: List[str] = []
    for index, item in enumerate(items):
        try:
            languages = validate_question_payload(item)
        except ValidationError as exc:
            errors.append(f"Question {index}: {exc.message}")
            continue

        question = build_question(item, languages)
        if session.get(Question, question.id):
            errors.append(f"Question {index}: id {question.id} already exists")
            continue

        session.add(question)
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Question %s insert failed: %s", question.id, exc)
            errors.append(f"Question {index}: {exc}")
            continue
        inserted.append(question.id)

    logger.info("Inserted %s questions (%s rejected)", len(inserted), len(errors))
    return inserted, errors


def delete_questions(session: Session, ids: Sequence[str]) -> int:
    """Delete the questions with the given ids; return how many existed."""

    rows = session.exec(select(Question).where(Question.id.in_(list(ids)))).all()
    for row in rows:
        session.delete(row)
    session.commit()
    logger.info("Deleted %s of %s questions", len(rows), len(ids))
    return len(rows)


__all__ = [
    "build_question",
    "delete_questions",
    "insert_questions",
    "list_questions",
    "new_question_id",
    "question_to_dict",
    "validate_question_payload",
]
