"""Database models for courses, teams and game runs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Obstacle(SQLModel, table=True):
    """Riddle detail document referenced by course obstacles."""

    __tablename__ = "obstacles"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    question: str
    options_json: str
    correct_answer_index: int
    created_by: Optional[str] = None
    created_at: datetime = ORMField(default_factory=utcnow)


class Course(SQLModel, table=True):
    """Playable route: start, ordered obstacles and a finish point."""

    __tablename__ = "courses"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    start_lat: float
    start_lng: float
    finish_lat: float
    finish_lng: float
    radius_m: int = 25
    # Ordered list of {"obstacleId", "lat", "lng"}; fixed once published.
    obstacles_json: str = "[]"
    published: bool = True
    created_by: Optional[str] = None
    created_at: datetime = ORMField(default_factory=utcnow)


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    name: str
    member_ids_json: str = "[]"
    created_at: datetime = ORMField(default_factory=utcnow)


class GameStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FINISHED = "finished"


class Game(SQLModel, table=True):
    """One team's attempt at a course."""

    __tablename__ = "games"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    course_id: int = ORMField(index=True, foreign_key="courses.id")
    team_id: int = ORMField(index=True, foreign_key="teams.id")
    status: GameStatus = ORMField(default=GameStatus.PENDING)
    is_test_mode: bool = False
    solved_by_json: str = "[]"
    # Obstacle ids skipped because their detail row is missing.
    faulty_obstacles_json: str = "[]"
    players_at_finish_json: str = "[]"
    player_positions_json: str = "{}"
    created_at: datetime = ORMField(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


__all__ = ["Course", "Game", "GameStatus", "Obstacle", "Team"]
