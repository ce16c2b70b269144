from __future__ import annotations

from easymode.db.models.user import User

HEADERS = {"X-User-Id": "user-1"}


def test_requests_without_user_are_rejected(client) -> None:
    assert client.post("/progress/tasks", json={"type": "action"}).status_code == 401
    assert client.get("/progress", headers={"X-User-Id": "  "}).status_code == 401


def test_completing_tasks_accumulates_progress(client, session_factory) -> None:
    first = client.post("/progress/tasks", json={"task_id": "t1", "type": "action", "duration": 300}, headers=HEADERS)
    assert first.status_code == 200
    body = first.json()
    assert body["xp_awarded"] == 100
    assert body["streak"] == 1
    assert body["badges_awarded"] == ["first_step"]
    assert body["request_id"]

    second = client.post(
        "/progress/tasks",
        json={"task_id": "a1", "type": "audacity", "outcome": "success"},
        headers=HEADERS,
    )
    assert second.json()["xp_total"] == 400
    assert second.json()["badges_awarded"] == ["bold_beginner"]

    progress = client.get("/progress", headers=HEADERS).json()
    assert progress["xp_total"] == 400
    assert progress["level"] == 1
    assert progress["xp_into_level"] == 400
    assert {badge["badge_id"] for badge in progress["badges"]} == {"first_step", "bold_beginner"}

    session = session_factory()
    try:
        assert session.get(User, "user-1").streak == 1
    finally:
        session.close()


def test_invalid_task_type_is_rejected(client) -> None:
    response = client.post("/progress/tasks", json={"type": "nap"}, headers=HEADERS)
    assert response.status_code == 422


def test_audacity_attempt_logged(client) -> None:
    response = client.post(
        "/progress/audacity-attempts",
        json={"task_id": "a1", "outcome": "fail", "notes": "Lost my nerve"},
        headers=HEADERS,
    )
    assert response.status_code == 201
    assert response.json()["outcome"] == "fail"

    profile = client.get("/behavior/profile", headers=HEADERS).json()["profile"]
    assert profile["success_rate_by_type"]["audacity"] == 0.0
    assert profile["total_tasks_completed"] == 0


def test_attempt_outcome_vocabulary(client) -> None:
    for outcome in ("success", "partial", "fail"):
        response = client.post("/progress/audacity-attempts", json={"outcome": outcome}, headers=HEADERS)
        assert response.status_code == 201

    response = client.post("/progress/audacity-attempts", json={"outcome": "failed"}, headers=HEADERS)
    assert response.status_code == 422
