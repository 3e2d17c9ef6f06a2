"""Database model exports."""

from .game import Course, Game, GameStatus, Obstacle, Team
from .question import Question
from .task import TERMINAL_STATUSES, BackgroundTask, TaskStatus

__all__ = [
    "BackgroundTask",
    "Course",
    "Game",
    "GameStatus",
    "Obstacle",
    "Question",
    "TERMINAL_STATUSES",
    "Team",
    "TaskStatus",
]
