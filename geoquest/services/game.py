"""Game run progression built on the proximity engine."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session

from ..core.errors import InvalidTransition, NotFound, ValidationError
from ..core.time import as_utc, isoformat, utcnow
from ..models import Course, Game, GameStatus, Obstacle, Team
from .courses import (
    course_to_dict,
    layout_from_course,
    obstacle_to_dict,
    obstacles_from_course,
)
from .geo import (
    FinishReached,
    GameEvent,
    Position,
    RiddleTriggered,
    RunSnapshot,
    RunStarted,
    add_to_set,
    evaluate_position,
)

logger = logging.getLogger(__name__)

MISSING_OBSTACLE_DETAILS = {"error": "Obstacle not found"}


def _load(raw: Optional[str], default: Any) -> Any:
    return json.loads(raw) if raw else default


def team_members(team: Team) -> List[str]:
    return _load(team.member_ids_json, [])


def solved_obstacles(game: Game) -> List[str]:
    return _load(game.solved_by_json, [])


def players_at_finish(game: Game) -> List[str]:
    return _load(game.players_at_finish_json, [])


def faulty_obstacles(game: Game) -> List[str]:
    return _load(game.faulty_obstacles_json, [])


def run_snapshot(game: Game) -> RunSnapshot:
    return RunSnapshot(status=game.status.value, solved=frozenset(solved_obstacles(game)))


def get_game(session: Session, game_id: int) -> Game:
    game = session.get(Game, game_id)
    if not game:
        raise NotFound("Game not found")
    return game


def _get_course(session: Session, course_id: int) -> Course:
    course = session.get(Course, course_id)
    if not course:
        raise NotFound("Course not found")
    return course


def _get_team(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if not team:
        raise NotFound("Team not found")
    return team


def start_game(
    session: Session, course_id: int, team_id: int, *, is_test_mode: bool = False
) -> Game:
    """Create a pending run for a team on a published course."""

    course = _get_course(session, course_id)
    if not course.published:
        raise ValidationError("Course is not published")
    _get_team(session, team_id)

    game = Game(course_id=course_id, team_id=team_id, is_test_mode=is_test_mode)
    session.add(game)
    session.commit()
    session.refresh(game)
    logger.info("Game %s created for team %s on course %s", game.id, team_id, course_id)
    return game


def win_condition_met(game: Game, course: Course, team: Team) -> bool:
    solved = set(solved_obstacles(game))
    if any(str(item["obstacleId"]) not in solved for item in obstacles_from_course(course)):
        return False
    at_finish = set(players_at_finish(game))
    if game.is_test_mode:
        return len(at_finish) >= 1
    return set(team_members(team)) <= at_finish


def report_position(
    session: Session, game_id: int, player_id: str, position: Position
) -> Tuple[Optional[GameEvent], Game]:
    """Record a player's live position and apply whatever it triggers.

    ``RunStarted`` and ``FinishReached`` are applied here. ``RiddleTriggered``
    is returned for the client to show the riddle; solving it goes through
    :func:`answer_riddle`. An obstacle whose detail row is missing cannot be
    answered, so it is marked solved, recorded as faulty and no event is
    returned. Outside test mode only team members count at the finish.
    """

    game = get_game(session, game_id)
    if game.status == GameStatus.FINISHED:
        return None, game

    course = _get_course(session, game.course_id)
    positions = _load(game.player_positions_json, {})
    positions[player_id] = {"lat": position.lat, "lng": position.lng}
    game.player_positions_json = json.dumps(positions)

    event = evaluate_position(layout_from_course(course), run_snapshot(game), position)

    if isinstance(event, RunStarted):
        game.status = GameStatus.ACTIVE
        game.started_at = utcnow()
        logger.info("Game %s started by player %s", game.id, player_id)
    elif isinstance(event, RiddleTriggered):
        if _obstacle_details(session, event.obstacle_id) is None:
            logger.warning(
                "Game %s: obstacle %s has no details; skipping it", game.id, event.obstacle_id
            )
            game.solved_by_json = json.dumps(
                add_to_set(solved_obstacles(game), event.obstacle_id)
            )
            game.faulty_obstacles_json = json.dumps(
                add_to_set(faulty_obstacles(game), event.obstacle_id)
            )
            event = None
    elif isinstance(event, FinishReached):
        team = _get_team(session, game.team_id)
        if game.is_test_mode or player_id in team_members(team):
            game.players_at_finish_json = json.dumps(
                add_to_set(players_at_finish(game), player_id)
            )
        else:
            logger.info("Game %s: %s is not on team %s", game.id, player_id, team.id)
        if win_condition_met(game, course, team):
            game.status = GameStatus.FINISHED
            game.finished_at = utcnow()
            logger.info("Game %s finished", game.id)

    session.add(game)
    session.commit()
    session.refresh(game)
    return event, game


def answer_riddle(
    session: Session,
    game_id: int,
    player_id: str,
    obstacle_id: str,
    answer_index: int,
) -> Tuple[bool, Game]:
    """Check an answer; a correct one marks the obstacle solved.

    A wrong answer changes nothing, so the obstacle stays open for retry.
    """

    game = get_game(session, game_id)
    if game.status == GameStatus.FINISHED:
        raise InvalidTransition("Game is already finished")
    if game.status != GameStatus.ACTIVE:
        raise InvalidTransition("Game has not started")

    course = _get_course(session, game.course_id)
    course_ids = [str(item["obstacleId"]) for item in obstacles_from_course(course)]
    if obstacle_id not in course_ids:
        raise ValidationError(f"Obstacle {obstacle_id} is not part of this course")

    obstacle = _obstacle_details(session, obstacle_id)
    if obstacle is None:
        raise NotFound("Obstacle not found")

    if answer_index != obstacle.correct_answer_index:
        logger.info("Game %s: wrong answer on obstacle %s by %s", game.id, obstacle_id, player_id)
        return False, game

    game.solved_by_json = json.dumps(add_to_set(solved_obstacles(game), obstacle_id))
    session.add(game)
    session.commit()
    session.refresh(game)
    logger.info("Game %s: obstacle %s solved by %s", game.id, obstacle_id, player_id)
    return True, game


def _obstacle_details(session: Session, obstacle_id: str) -> Optional[Obstacle]:
    try:
        key = int(obstacle_id)
    except (TypeError, ValueError):
        return None
    return session.get(Obstacle, key)


def game_to_dict(game: Game) -> Dict[str, Any]:
    return {
        "id": game.id,
        "courseId": game.course_id,
        "teamId": game.team_id,
        "status": game.status.value,
        "isTestMode": game.is_test_mode,
        "solvedBy": solved_obstacles(game),
        "faultyObstacles": faulty_obstacles(game),
        "playersAtFinish": players_at_finish(game),
        "playerPositions": _load(game.player_positions_json, {}),
        "createdAt": isoformat(game.created_at),
        "startedAt": isoformat(game.started_at),
        "finishedAt": isoformat(game.finished_at),
    }


def team_to_dict(team: Team) -> Dict[str, Any]:
    return {
        "id": team.id,
        "name": team.name,
        "memberIds": team_members(team),
        "createdAt": isoformat(team.created_at),
    }


def event_to_dict(event: Optional[GameEvent]) -> Optional[Dict[str, Any]]:
    if event is None:
        return None
    payload: Dict[str, Any] = {"type": event.type}
    obstacle_id = getattr(event, "obstacle_id", None)
    if obstacle_id is not None:
        payload["obstacleId"] = obstacle_id
    return payload


def game_report(session: Session, game_id: int) -> Dict[str, Any]:
    """Summary shown when a run ends (or so far, while it is running)."""

    game = get_game(session, game_id)
    course = _get_course(session, game.course_id)
    started = as_utc(game.started_at)
    ended = as_utc(game.finished_at) or (utcnow() if started else None)
    elapsed = int((ended - started).total_seconds()) if started and ended else None
    return {
        "gameId": game.id,
        "status": game.status.value,
        "courseName": course.name,
        "obstacleCount": len(obstacles_from_course(course)),
        "solvedCount": len(solved_obstacles(game)),
        "playersAtFinish": players_at_finish(game),
        "elapsedSeconds": elapsed,
        "startedAt": isoformat(game.started_at),
        "finishedAt": isoformat(game.finished_at),
    }


def compose_game_data(session: Session, game_id: int) -> Dict[str, Any]:
    """Join game -> team -> course -> obstacle details into one document.

    Reads are sequential and independent; a concurrent edit can show up as a
    mixed view. Missing obstacle details become a placeholder, not a failure.
    """

    game = get_game(session, game_id)
    team = session.get(Team, game.team_id)
    course = session.get(Course, game.course_id)

    course_details: Optional[Dict[str, Any]] = None
    if course:
        detailed = []
        for item in obstacles_from_course(course):
            obstacle = _obstacle_details(session, str(item["obstacleId"]))
            detailed.append(
                {
                    "position": {"lat": item["lat"], "lng": item["lng"]},
                    "details": obstacle_to_dict(obstacle)
                    if obstacle
                    else dict(MISSING_OBSTACLE_DETAILS),
                }
            )
        course_details = {**course_to_dict(course), "obstacles": detailed}

    return {
        "gameDetails": game_to_dict(game),
        "teamDetails": team_to_dict(team) if team else None,
        "courseDetails": course_details,
    }


__all__ = [
    "MISSING_OBSTACLE_DETAILS",
    "answer_riddle",
    "compose_game_data",
    "event_to_dict",
    "faulty_obstacles",
    "game_report",
    "game_to_dict",
    "get_game",
    "report_position",
    "run_snapshot",
    "start_game",
    "team_to_dict",
    "win_condition_met",
]
