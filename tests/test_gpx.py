# tests/test_gpx.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from geoquest.core.errors import ValidationError
from geoquest.services.gpx import parse_gpx_course

WAYPOINTS = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <metadata><name>Djurgården runt</name></metadata>
  <wpt lat="59.3260" lon="18.0960"><name>Start</name></wpt>
  <wpt lat="59.3270" lon="18.1000"><name>Skansen</name></wpt>
  <wpt lat="59.3290" lon="18.1100"><name>Blockhusudden</name></wpt>
  <wpt lat="59.3300" lon="18.1200"><name>Mål</name></wpt>
</gpx>
"""

TRACK = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><trkseg>
    <trkpt lat="57.70" lon="11.97"></trkpt>
    <trkpt lat="57.71" lon="11.98"></trkpt>
  </trkseg></trk>
</gpx>
"""

SINGLE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <wpt lat="59.3260" lon="18.0960"><name>Alone</name></wpt>
</gpx>
"""


def test_waypoints_become_start_checkpoints_finish() -> None:
    course = parse_gpx_course(WAYPOINTS)

    assert course["name"] == "Djurgården runt"
    assert course["start"] == {"lat": 59.326, "lng": 18.096}
    assert course["finish"] == {"lat": 59.33, "lng": 18.12}
    assert [c["name"] for c in course["checkpoints"]] == ["Skansen", "Blockhusudden"]


def test_track_points_are_used_without_waypoints() -> None:
    course = parse_gpx_course(TRACK)
    assert course["start"] == {"lat": 57.70, "lng": 11.97}
    assert course["checkpoints"] == []


def test_too_few_points() -> None:
    with pytest.raises(ValidationError):
        parse_gpx_course(SINGLE)


def test_garbage_is_rejected() -> None:
    with pytest.raises(ValidationError):
        parse_gpx_course("<not-gpx>")


def test_import_endpoint(client: TestClient) -> None:
    r = client.post(
        "/courses/import-gpx",
        files={"gpxfile": ("route.gpx", WAYPOINTS.encode("utf-8"), "application/gpx+xml")},
    )
    assert r.status_code == 200
    assert len(r.json()["checkpoints"]) == 2

    r = client.post(
        "/courses/import-gpx", files={"gpxfile": ("notes.txt", b"hello", "text/plain")}
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Only GPX files are allowed"
