from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from easymode.core.errors import LLMOutputError
from easymode.db import Base
from easymode.db.deps import get_db
from easymode.db.models.task import Task
from easymode.db.models.user import User
import easymode.main as main_module
from easymode.main import app
from easymode.services.llm import ChatResult, LLMClient, ToolCall, get_llm_client


class FakeLLM(LLMClient):
    """Replays scripted replies; strings become plain text, exceptions are raised."""

    def __init__(self, responses: Iterable[Any] = (), default: Any = None) -> None:
        self.model = "fake-model"
        self.temperature = 0.7
        self._responses: List[Any] = list(responses)
        self.default = default
        self.calls: List[Dict[str, Any]] = []

    def chat(
        self,
        messages: List[Dict[str, Any]],
        *,
        tools: Optional[List[Dict[str, Any]]] = None,
        json_mode: bool = False,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatResult:
        self.calls.append({"messages": list(messages), "tools": tools, "json_mode": json_mode})
        if self._responses:
            item = self._responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise LLMOutputError("No scripted response left")
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return ChatResult(content=item)
        return item


def tool_reply(*calls: tuple) -> ChatResult:
    """Build an assistant turn requesting the given (name, arguments) tool calls."""
    return ChatResult(
        content=None,
        tool_calls=[
            ToolCall(id=f"call_{index}", name=name, arguments=arguments, raw_arguments=json.dumps(arguments))
            for index, (name, arguments) in enumerate(calls)
        ],
    )


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory, monkeypatch):
    monkeypatch.setattr(main_module.settings, "database_create_tables", False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def use_llm():
    """Install a FakeLLM as the request-scoped LLM dependency."""

    def install(llm: FakeLLM) -> FakeLLM:
        app.dependency_overrides[get_llm_client] = lambda: llm
        return llm

    return install


def seed_user(session, user_id: str = "user-1", **fields) -> User:
    fields.setdefault("badges", [])
    user = User(id=user_id, **fields)
    session.add(user)
    session.commit()
    return user


def seed_tasks(session, *tasks: Dict[str, Any]) -> None:
    for fields in tasks:
        session.add(Task(**fields))
    session.commit()
