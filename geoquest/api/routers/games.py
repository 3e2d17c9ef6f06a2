"""Game run endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ...core import ValidationError, get_session
from ...services.courses import parse_point
from ...services.game import (
    answer_riddle,
    compose_game_data,
    event_to_dict,
    game_report,
    game_to_dict,
    get_game,
    report_position,
    start_game,
)

router = APIRouter(tags=["games"])


def _required_int(body: Dict[str, Any], key: str) -> int:
    value = body.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    return value


def _player_id(body: Dict[str, Any]) -> str:
    player_id = body.get("playerId")
    if not player_id or not isinstance(player_id, str):
        raise ValidationError("playerId is required")
    return player_id


@router.post("/games")
def create_game(body: Dict[str, Any], session: Session = Depends(get_session)):
    """Start a new run for a team on a course."""

    game = start_game(
        session,
        _required_int(body, "courseId"),
        _required_int(body, "teamId"),
        is_test_mode=bool(body.get("isTestMode")),
    )
    return game_to_dict(game)


@router.get("/games/{game_id}")
def get_one_game(game_id: int, session: Session = Depends(get_session)):
    return game_to_dict(get_game(session, game_id))


@router.post("/games/{game_id}/position")
def post_position(game_id: int, body: Dict[str, Any], session: Session = Depends(get_session)):
    """Report a live GPS reading and return the event it triggered, if any."""

    player_id = _player_id(body)
    position = parse_point(body, "position")
    event, game = report_position(session, game_id, player_id, position)
    return {"event": event_to_dict(event), "game": game_to_dict(game)}


@router.post("/games/{game_id}/answer")
def post_answer(game_id: int, body: Dict[str, Any], session: Session = Depends(get_session)):
    """Answer the riddle of an obstacle."""

    player_id = _player_id(body)
    obstacle_id = body.get("obstacleId")
    if obstacle_id in (None, ""):
        raise ValidationError("obstacleId is required")
    answer = _required_int(body, "answerIndex")

    correct, game = answer_riddle(session, game_id, player_id, str(obstacle_id), answer)
    return {"correct": correct, "game": game_to_dict(game)}


@router.get("/games/{game_id}/report")
def get_report(game_id: int, session: Session = Depends(get_session)):
    return game_report(session, game_id)


@router.get("/json/{game_id}")
def get_game_json(game_id: int, session: Session = Depends(get_session)):
    """Game, team, course and obstacle details in one document."""

    return compose_game_data(session, game_id)


__all__ = ["router"]
