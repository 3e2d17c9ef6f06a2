"""Aggregate API routers."""

from fastapi import APIRouter

from .ai import router as ai_router
from .courses import router as courses_router
from .games import router as games_router
from .questions import router as questions_router
from .system import router as system_router
from .tasks import router as tasks_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    tasks_router,
    questions_router,
    ai_router,
    courses_router,
    games_router,
)

__all__ = ["ALL_ROUTERS"]
