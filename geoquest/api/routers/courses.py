"""Course, obstacle and team management endpoints."""

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, UploadFile
from sqlmodel import Session, select

from ...core import PROXIMITY_RADIUS_M, NotFound, ValidationError, get_session
from ...models import Course, Obstacle, Team
from ...services.courses import (
    course_to_dict,
    obstacle_to_dict,
    parse_point,
    validate_course_obstacles,
    validate_riddle,
)
from ...services.game import team_to_dict
from ...services.gpx import parse_gpx_course

router = APIRouter(tags=["courses"])


@router.post("/obstacles")
def create_obstacle(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Create a riddle that courses can reference."""

    question = body.get("question")
    options = body.get("options")
    correct = body.get("correctAnswer")
    validate_riddle(question, options, correct)

    obstacle = Obstacle(
        question=question.strip(),
        options_json=json.dumps(options),
        correct_answer_index=correct,
        created_by=body.get("createdBy"),
    )
    session.add(obstacle)
    session.commit()
    session.refresh(obstacle)
    return obstacle_to_dict(obstacle)


@router.get("/obstacles/{obstacle_id}")
def get_obstacle(obstacle_id: int, session: Session = Depends(get_session)):
    obstacle = session.get(Obstacle, obstacle_id)
    if not obstacle:
        raise NotFound("Obstacle not found")
    return obstacle_to_dict(obstacle)


@router.post("/courses")
def create_course(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Create a course from a start, ordered obstacles and a finish."""

    name = (body.get("name") or "").strip()
    if not name:
        raise ValidationError("Name is required")

    start = parse_point(body.get("start"), "start")
    finish = parse_point(body.get("finish"), "finish")
    obstacles = validate_course_obstacles(body.get("obstacles"))

    try:
        radius_m = int(body.get("radiusM") or PROXIMITY_RADIUS_M)
    except (TypeError, ValueError) as exc:
        raise ValidationError("radiusM must be an integer") from exc
    if radius_m <= 0:
        raise ValidationError("radiusM must be positive")

    course = Course(
        name=name,
        description=body.get("description"),
        start_lat=start.lat,
        start_lng=start.lng,
        finish_lat=finish.lat,
        finish_lng=finish.lng,
        radius_m=radius_m,
        obstacles_json=json.dumps(obstacles),
        published=bool(body.get("published", True)),
        created_by=body.get("createdBy"),
    )
    session.add(course)
    session.commit()
    session.refresh(course)
    return course_to_dict(course)


@router.get("/courses")
def list_courses(session: Session = Depends(get_session)):
    """List all courses."""

    courses = session.exec(select(Course)).all()
    return [course_to_dict(course) for course in courses]


@router.get("/courses/{course_id}")
def get_course(course_id: int, session: Session = Depends(get_session)):
    """Get a specific course by ID."""

    course = session.get(Course, course_id)
    if not course:
        raise NotFound("Course not found")
    return course_to_dict(course)


@router.post("/courses/import-gpx")
async def import_gpx(gpxfile: UploadFile = File(...)) -> Dict[str, Any]:
    """Read start, checkpoints and finish from an uploaded GPX file."""

    filename = (gpxfile.filename or "").lower()
    if not (
        filename.endswith(".gpx")
        or gpxfile.content_type
        in ("application/gpx+xml", "application/xml", "text/xml")
    ):
        raise ValidationError("Only GPX files are allowed")

    content = await gpxfile.read()
    if not content.strip():
        raise ValidationError("File is empty")
    if len(content) > 10 * 1024 * 1024:
        raise ValidationError("File too large. Maximum size is 10MB.")

    return parse_gpx_course(content.decode("utf-8", errors="ignore"))


@router.post("/teams")
def create_team(body: Dict[str, Any], session: Session = Depends(get_session)):
    name = (body.get("name") or "").strip()
    members = body.get("memberIds") or []
    if not name:
        raise ValidationError("Name is required")
    if not isinstance(members, list) or not all(isinstance(m, str) and m for m in members):
        raise ValidationError("memberIds must be a list of player ids")

    team = Team(name=name[:60], member_ids_json=json.dumps(list(dict.fromkeys(members))))
    session.add(team)
    session.commit()
    session.refresh(team)
    return team_to_dict(team)


__all__ = ["router"]
