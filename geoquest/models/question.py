"""Database model for the question bank."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Question(SQLModel, table=True):
    """Multiple-choice question stored with Swedish and English variants."""

    __tablename__ = "questions"

    id: str = ORMField(primary_key=True)
    question_sv: Optional[str] = None
    question_en: Optional[str] = None
    options_sv_json: Optional[str] = None
    options_en_json: Optional[str] = None
    explanation_sv: Optional[str] = None
    explanation_en: Optional[str] = None
    background_sv: Optional[str] = None
    background_en: Optional[str] = None
    correct_option: int = 0
    categories_json: str = "[]"
    age_groups_json: str = "[]"
    target_audience: str = "swedish"
    difficulty: str = "medium"
    illustration_svg: Optional[str] = None
    illustration_emoji: Optional[str] = None
    ai_generated: bool = False
    ai_generation_provider: Optional[str] = None
    ai_generation_model: Optional[str] = None
    validated: bool = False
    created_by: str = "system"
    created_at: datetime = ORMField(default_factory=utcnow, index=True)
    updated_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["Question"]
