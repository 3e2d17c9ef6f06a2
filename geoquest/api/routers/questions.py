"""Question bank endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from ...core import ValidationError, get_session
from ...services.questions import (
    delete_questions,
    insert_questions,
    list_questions,
    question_to_dict,
)

router = APIRouter(tags=["questions"])


@router.get("/listQuestions")
def list_all_questions(session: Session = Depends(get_session)):
    """Return every question, newest first."""

    questions = [question_to_dict(question) for question in list_questions(session)]
    return {"success": True, "questions": questions, "count": len(questions)}


@router.post("/questions/batch")
def add_questions(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Insert several questions; each item is accepted or rejected on its own."""

    questions = body.get("questions")
    if not isinstance(questions, list) or not questions:
        raise ValidationError("questions must be a non-empty array")

    ids, errors = insert_questions(session, questions)
    response: Dict[str, Any] = {"success": True, "count": len(ids), "ids": ids}
    if errors:
        response["errors"] = errors
    return response


@router.delete("/questions/batch-delete")
def remove_questions(
    body: Dict[str, Any] = Body(...), session: Session = Depends(get_session)
):
    """Delete several questions by id."""

    ids = body.get("ids")
    if not isinstance(ids, list) or not ids:
        raise ValidationError("ids must be a non-empty array")

    count = delete_questions(session, [str(item) for item in ids])
    return {"success": True, "count": count}


__all__ = ["router"]
