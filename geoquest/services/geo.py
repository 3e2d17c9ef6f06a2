"""Proximity game engine.

Turns a live GPS reading into at most one discrete game event. The engine is
pure: it looks at a course layout and a snapshot of the run, and the caller
decides how to persist whatever the event implies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Sequence, Union

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class Position:
    lat: float
    lng: float


@dataclass(frozen=True)
class CourseObstacle:
    obstacle_id: str
    position: Position


@dataclass(frozen=True)
class CourseLayout:
    """Geometry of a course in play order."""

    start: Position
    finish: Position
    obstacles: Sequence[CourseObstacle]
    radius_m: float


@dataclass(frozen=True)
class RunSnapshot:
    """The parts of a game run the engine needs."""

    status: str
    solved: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class RunStarted:
    type: str = "run_started"


@dataclass(frozen=True)
class RiddleTriggered:
    obstacle_id: str
    type: str = "riddle_triggered"


@dataclass(frozen=True)
class FinishReached:
    type: str = "finish_reached"


GameEvent = Union[RunStarted, RiddleTriggered, FinishReached]


def haversine_m(a: Position, b: Position) -> float:
    """Great-circle distance in meters using the Haversine formula."""

    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat))
        * math.cos(math.radians(b.lat))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def within_radius(point: Position, target: Position, radius_m: float) -> bool:
    return haversine_m(point, target) <= radius_m


def evaluate_position(
    course: CourseLayout, run: RunSnapshot, position: Position
) -> Optional[GameEvent]:
    """Return the event triggered by ``position``, or None when nothing is in range.

    A pending run only reacts to the start point. An active run looks at
    unsolved obstacles in course order (the lowest index wins when several are
    in range) and, once every obstacle is solved, at the finish point.
    """

    if run.status == "finished":
        return None

    if run.status == "pending":
        if within_radius(position, course.start, course.radius_m):
            return RunStarted()
        return None

    all_solved = True
    for obstacle in course.obstacles:
        if obstacle.obstacle_id in run.solved:
            continue
        all_solved = False
        if within_radius(position, obstacle.position, course.radius_m):
            return RiddleTriggered(obstacle.obstacle_id)

    if all_solved and within_radius(position, course.finish, course.radius_m):
        return FinishReached()
    return None


def add_to_set(members: Sequence[str], value: str) -> list[str]:
    """Set-union append that keeps insertion order; re-adding is a no-op."""

    if value in members:
        return list(members)
    return [*members, value]


__all__ = [
    "CourseLayout",
    "CourseObstacle",
    "EARTH_RADIUS_M",
    "FinishReached",
    "GameEvent",
    "Position",
    "RiddleTriggered",
    "RunSnapshot",
    "RunStarted",
    "add_to_set",
    "evaluate_position",
    "haversine_m",
    "within_radius",
]
