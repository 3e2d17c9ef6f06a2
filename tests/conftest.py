# tests/conftest.py

from __future__ import annotations

import os

# Must be set before geoquest is imported: the engine is built at import time.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPERUSER_EMAIL"] = "Admin@GeoQuest.se"

from typing import Any, Dict, Iterator, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from geoquest import models  # noqa: E402,F401
from geoquest.app import app  # noqa: E402
from geoquest.core.database import engine  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db() -> Iterator[None]:
    """Every test starts from empty tables in the shared in-memory database."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture()
def session() -> Iterator[Session]:
    with Session(engine) as s:
        yield s


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def parse_sse(body: str) -> List[Dict[str, Any]]:
    """Split a text/event-stream body into decoded data payloads."""
    import json

    events = []
    for frame in body.split("\n\n"):
        frame = frame.strip()
        if frame.startswith("data: "):
            events.append(json.loads(frame[len("data: "):]))
    return events
