"""GPX import for course geometry."""

from __future__ import annotations

from typing import Any, Dict, List

import gpxpy
import gpxpy.gpx

from ..core.errors import ValidationError


def _points_from_gpx(gpx: gpxpy.gpx.GPX) -> List[Dict[str, Any]]:
    """Waypoints first, then the first route, then the first track."""

    if gpx.waypoints:
        return [
            {"name": wpt.name, "lat": wpt.latitude, "lng": wpt.longitude}
            for wpt in gpx.waypoints
        ]

    for route in gpx.routes:
        points = [
            {"name": point.name, "lat": point.latitude, "lng": point.longitude}
            for point in route.points or []
        ]
        if points:
            return points

    for track in gpx.tracks:
        points = [
            {"name": None, "lat": point.latitude, "lng": point.longitude}
            for segment in track.segments or []
            for point in segment.points or []
        ]
        if points:
            return points
    return []


def parse_gpx_course(text: str) -> Dict[str, Any]:
    """Turn GPX text into a course skeleton: start, checkpoints, finish.

    The first point is the start and the last is the finish; everything in
    between is offered as an obstacle position in file order.
    """

    try:
        gpx = gpxpy.parse(text)
    except gpxpy.gpx.GPXException as exc:
        raise ValidationError(f"Invalid GPX file: {exc}") from exc

    points = _points_from_gpx(gpx)
    if len(points) < 2:
        raise ValidationError("GPX file needs at least a start and a finish point")

    start, *middle, finish = points
    return {
        "name": gpx.name,
        "start": {"lat": start["lat"], "lng": start["lng"]},
        "finish": {"lat": finish["lat"], "lng": finish["lng"]},
        "checkpoints": middle,
    }


__all__ = ["parse_gpx_course"]
