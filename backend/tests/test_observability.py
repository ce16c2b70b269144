"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib
import time

import pytest

from easymode.observability import best_effort, tracing
from easymode.observability.evaluation import (
    TASK_RELEVANCE,
    evaluate_with_llm,
    prompt_hash,
    render_prompt,
)
from easymode.observability.tracing import record_output, trace

from conftest import FakeLLM


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import easymode.core.config as core_config
    import easymode.observability.client as client_module
    import easymode.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


class _Trace:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.updates = []
        self.scores = []
        self.ended = False

    def update(self, **kwargs):
        self.updates.append(kwargs)

    def log_feedback_score(self, **kwargs):
        self.scores.append(kwargs)

    def end(self):
        self.ended = True


class _Client:
    def __init__(self):
        self.traces = []
        self.flushed = False

    def trace(self, **kwargs):
        opik_trace = _Trace(**kwargs)
        self.traces.append(opik_trace)
        return opik_trace

    def flush(self):
        self.flushed = True


def test_trace_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    with trace("coach.decide") as opik_trace:
        assert opik_trace is None
    record_output(None, {"ignored": True})


def test_trace_tags_metadata_and_errors(monkeypatch) -> None:
    client = _Client()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)

    with pytest.raises(RuntimeError):
        with trace("weekly_plan.generate", metadata={"week": 1}, user_id="u1", request_id="r1", tags=["agent"]):
            raise RuntimeError("boom")

    (opik_trace,) = client.traces
    assert opik_trace.kwargs["tags"] == ["easy-mode", "weekly_plan", "agent"]
    assert opik_trace.kwargs["metadata"] == {"week": 1, "user_id": "u1", "request_id": "r1"}
    assert opik_trace.updates[0]["error_info"]["exception_type"] == "RuntimeError"
    assert opik_trace.ended is True


def test_record_output_logs_feedback_scores() -> None:
    opik_trace = _Trace()

    record_output(opik_trace, {"answer": 1}, scores=[{"name": "safety", "value": 5, "reason": "fine"}])

    assert opik_trace.updates == [{"output": {"answer": 1}}]
    assert opik_trace.scores == [{"name": "safety", "value": 5, "reason": "fine"}]


def test_best_effort_swallows_failures_and_timeouts() -> None:
    def explode():
        raise ValueError("nope")

    assert best_effort.run_best_effort(lambda: None, timeout=1, label="ok") is True
    assert best_effort.run_best_effort(explode, timeout=1, label="explode") is False
    assert best_effort.run_best_effort(lambda: time.sleep(0.5), timeout=0.05, label="slow") is False


def test_flush_opik_uses_client(monkeypatch) -> None:
    client = _Client()
    monkeypatch.setattr(best_effort, "get_opik_client", lambda: client)

    assert best_effort.flush_opik(timeout=1) is True
    assert client.flushed is True

    monkeypatch.setattr(best_effort, "get_opik_client", lambda: None)
    assert best_effort.flush_opik() is True


def test_llm_judge_clamps_and_survives_errors() -> None:
    score, raw = evaluate_with_llm(FakeLLM(["Score: 9"]), TASK_RELEVANCE, {"goal": "g", "pain": "p", "task": "t"})
    assert score == 5
    assert raw == "Score: 9"

    score, raw = evaluate_with_llm(FakeLLM(), TASK_RELEVANCE, {})
    assert score == 1
    assert raw == "error"


def test_prompt_helpers() -> None:
    assert render_prompt("Goal: {{goal}} / {{missing}}", {"goal": "run"}) == "Goal: run / "
    assert len(prompt_hash("abc")) == 12


def test_opik_status_explains_why_tracing_is_off(monkeypatch) -> None:
    import easymode.observability.client as client_module

    monkeypatch.setattr(client_module.settings, "opik_enabled", False)
    client_module.reset_opik_client()
    assert client_module.opik_status() == client_module.STATUS_DISABLED
    assert client_module.get_opik_client() is None

    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    client_module.reset_opik_client()
    assert client_module.opik_status() == client_module.STATUS_MISSING_API_KEY
    assert client_module.get_opik_client() is None

    client_module.reset_opik_client()
