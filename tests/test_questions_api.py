# tests/test_questions_api.py

from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from geoquest.core.errors import ValidationError
from geoquest.services.questions import validate_question_payload


def _question(**overrides: Any) -> Dict[str, Any]:
    base = {
        "correctOption": 0,
        "categories": ["Geografi"],
        "difficulty": "easy",
        "languages": {
            "sv": {
                "text": "Vilken är Sveriges huvudstad?",
                "options": ["Stockholm", "Göteborg", "Malmö", "Uppsala"],
                "explanation": "Stockholm är huvudstad.",
            },
            "en": {
                "text": "What is the capital of Sweden?",
                "options": ["Stockholm", "Gothenburg", "Malmö", "Uppsala"],
                "explanation": "Stockholm is the capital.",
            },
        },
    }
    base.update(overrides)
    return base


def test_batch_insert_assigns_ids_and_lists_back(client: TestClient) -> None:
    r = client.post(
        "/questions/batch",
        json={"questions": [_question(), _question(id="fixed-id", correctOption=2)]},
    )
    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    assert body["count"] == 2
    assert "fixed-id" in body["ids"]
    generated = [i for i in body["ids"] if i != "fixed-id"][0]
    assert generated.startswith("q_")

    listed = client.get("/listQuestions").json()
    assert listed["success"] is True
    assert listed["count"] == 2
    by_id = {q["id"]: q for q in listed["questions"]}
    fixed = by_id["fixed-id"]
    assert fixed["correctOption"] == 2
    assert fixed["languages"]["en"]["options"][0] == "Stockholm"
    assert fixed["languages"]["sv"]["text"] == "Vilken är Sveriges huvudstad?"
    assert fixed["categories"] == ["Geografi"]


def test_batch_insert_rejects_items_independently(client: TestClient) -> None:
    bad_index = _question(correctOption=7)
    no_language = {"correctOption": 0, "languages": {}}
    r = client.post(
        "/questions/batch",
        json={"questions": [bad_index, _question(id="ok"), no_language, _question(id="ok")]},
    )
    body = r.json()
    assert body["count"] == 1
    assert body["ids"] == ["ok"]
    assert len(body["errors"]) == 3
    assert "already exists" in body["errors"][-1]


def test_batch_insert_requires_a_list(client: TestClient) -> None:
    r = client.post("/questions/batch", json={"questions": []})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "questions must be a non-empty array"}


def test_single_language_question_is_valid() -> None:
    languages = validate_question_payload(
        {"correctOption": 1, "languages": {"en": {"text": "2+2?", "options": ["3", "4"]}}}
    )
    assert list(languages) == ["en"]


def test_correct_option_must_fit_every_language() -> None:
    payload = _question(correctOption=3)
    payload["languages"]["en"]["options"] = ["A", "B"]
    with pytest.raises(ValidationError):
        validate_question_payload(payload)


def test_batch_delete(client: TestClient) -> None:
    client.post("/questions/batch", json={"questions": [_question(id="a"), _question(id="b")]})

    r = client.request("DELETE", "/questions/batch-delete", json={"ids": ["a", "zzz"]})

    assert r.json() == {"success": True, "count": 1}
    assert [q["id"] for q in client.get("/listQuestions").json()["questions"]] == ["b"]


def test_batch_delete_requires_ids(client: TestClient) -> None:
    r = client.request("DELETE", "/questions/batch-delete", json={"ids": []})
    assert r.status_code == 400
