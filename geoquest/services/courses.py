"""Helpers for course and obstacle domain objects."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from ..core.errors import ValidationError
from ..core.time import isoformat
from ..models import Course, Obstacle
from .geo import CourseLayout, CourseObstacle, Position


def obstacles_from_course(course: Course) -> List[Dict[str, Any]]:
    """Extract the ordered obstacle list from stored JSON."""

    return json.loads(course.obstacles_json or "[]")


def layout_from_course(course: Course) -> CourseLayout:
    return CourseLayout(
        start=Position(course.start_lat, course.start_lng),
        finish=Position(course.finish_lat, course.finish_lng),
        obstacles=[
            CourseObstacle(str(item["obstacleId"]), Position(item["lat"], item["lng"]))
            for item in obstacles_from_course(course)
        ],
        radius_m=course.radius_m,
    )


def course_to_dict(course: Course) -> Dict[str, Any]:
    """Serialise a course model to API-friendly dict."""

    obstacles = obstacles_from_course(course)
    return {
        "id": course.id,
        "name": course.name,
        "description": course.description,
        "start": {"lat": course.start_lat, "lng": course.start_lng},
        "finish": {"lat": course.finish_lat, "lng": course.finish_lng},
        "radiusM": course.radius_m,
        "obstacles": obstacles,
        "obstacleCount": len(obstacles),
        "published": course.published,
        "createdBy": course.created_by,
        "createdAt": isoformat(course.created_at),
    }


def obstacle_to_dict(obstacle: Obstacle) -> Dict[str, Any]:
    return {
        "id": obstacle.id,
        "question": obstacle.question,
        "options": json.loads(obstacle.options_json or "[]"),
        "correctAnswer": obstacle.correct_answer_index,
        "createdBy": obstacle.created_by,
        "createdAt": isoformat(obstacle.created_at),
    }


def parse_point(raw: Any, field: str) -> Position:
    """Validate a {lat, lng} payload."""

    if not isinstance(raw, dict):
        raise ValidationError(f"{field} must be an object with lat and lng")
    try:
        lat = float(raw["lat"])
        lng = float(raw["lng"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must have numeric lat and lng") from exc
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError(f"{field} is outside valid coordinate range")
    return Position(lat, lng)


def validate_riddle(question: Any, options: Any, correct_index: Any) -> None:
    if not isinstance(question, str) or not question.strip():
        raise ValidationError("question is required")
    if not isinstance(options, list) or len(options) < 2:
        raise ValidationError("options must be a list with at least two entries")
    if not isinstance(correct_index, int) or isinstance(correct_index, bool):
        raise ValidationError("correctAnswer must be an integer")
    if not 0 <= correct_index < len(options):
        raise ValidationError("correctAnswer must index within options")


def validate_course_obstacles(raw: Any) -> List[Dict[str, Any]]:
    """Normalise the ordered obstacle list of a course payload."""

    if not isinstance(raw, list) or not raw:
        raise ValidationError("At least one obstacle is required")
    obstacles: List[Dict[str, Any]] = []
    seen = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict) or item.get("obstacleId") in (None, ""):
            raise ValidationError(f"obstacles[{index}] is missing obstacleId")
        obstacle_id = str(item["obstacleId"])
        if obstacle_id in seen:
            raise ValidationError(f"Obstacle {obstacle_id} appears more than once")
        seen.add(obstacle_id)
        point = parse_point(item, f"obstacles[{index}]")
        obstacles.append({"obstacleId": obstacle_id, "lat": point.lat, "lng": point.lng})
    return obstacles


__all__ = [
    "course_to_dict",
    "layout_from_course",
    "obstacle_to_dict",
    "obstacles_from_course",
    "parse_point",
    "validate_course_obstacles",
    "validate_riddle",
]
