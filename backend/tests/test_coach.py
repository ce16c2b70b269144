from __future__ import annotations

from datetime import datetime, timezone

import pytest

from easymode.core.errors import LLMServiceError, NotFoundError
from easymode.observability import tracing
from easymode.services.coach import coach_decides

from conftest import FakeLLM, seed_tasks, seed_user

NOW = datetime(2026, 3, 11, 3, 0, tzinfo=timezone.utc)


def _catalog(db) -> None:
    seed_tasks(
        db,
        *[
            {"id": f"t{i}", "title": f"Task {i}", "description": "", "type": "action", "estimated_minutes": 10}
            for i in range(1, 7)
        ],
    )


def test_model_pick_is_used(db) -> None:
    seed_user(db)
    _catalog(db)
    llm = FakeLLM(['{"task_id": "t3", "reasoning": "Short and doable before lunch."}'])

    decision = coach_decides(db, llm, "user-1", now=NOW)

    assert decision.success is True
    assert decision.source == "llm"
    assert decision.task.id == "t3"
    assert decision.reasoning == "Short and doable before lunch."
    prompt = llm.calls[0]["messages"][1]["content"]
    assert '"id": "t5"' in prompt
    assert '"id": "t6"' not in prompt


def test_unknown_pick_falls_back_to_top_candidate(db) -> None:
    _catalog(db)
    llm = FakeLLM(['{"task_id": "nope", "reasoning": "?"}'])

    decision = coach_decides(db, llm, "user-1", now=NOW)

    assert decision.success is False
    assert decision.source == "fallback"
    assert decision.task.id == "t1"
    assert "nope" in decision.error


def test_model_failure_falls_back(db) -> None:
    _catalog(db)

    decision = coach_decides(db, FakeLLM([LLMServiceError("timeout")]), "user-1", now=NOW)

    assert decision.task.id == "t1"
    assert decision.error == "timeout"


def test_empty_catalog_is_not_found(db) -> None:
    with pytest.raises(NotFoundError):
        coach_decides(db, FakeLLM(), "user-1", now=NOW)


class _Trace:
    def __init__(self):
        self.updates = []
        self.scores = []

    def update(self, **kwargs):
        self.updates.append(kwargs)

    def log_feedback_score(self, **kwargs):
        self.scores.append(kwargs)

    def end(self):
        pass


class _Client:
    def __init__(self):
        self.traces = []

    def trace(self, **kwargs):
        opik_trace = _Trace()
        self.traces.append(opik_trace)
        return opik_trace


def test_decision_confidence_is_scored_when_tracing(db, monkeypatch) -> None:
    _catalog(db)
    client = _Client()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)
    llm = FakeLLM(['{"task_id": "t2", "reasoning": "Fits your morning."}', "4"])

    decision = coach_decides(db, llm, "user-1", now=NOW)

    assert decision.confidence == 4
    (decision_trace,) = client.traces
    assert decision_trace.scores[0]["name"] == "decision_confidence"
    assert decision_trace.scores[0]["value"] == 4
    assert any("experiment" in update.get("metadata", {}) for update in decision_trace.updates)
