from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from easymode.core.errors import LLMOutputError
from easymode.db.models.memory import MemoryEntry
from easymode.services.chat import ChatTurn, chat_with_memory
from easymode.services.memory_store import MemoryStore

from conftest import FakeLLM, seed_user

NOW = datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)


def test_memories_reach_the_system_prompt_and_achievements_are_saved(db) -> None:
    seed_user(db, display_name="Sam")
    MemoryStore(db).store("user-1", "setback", "froze during the team meeting", importance=4, now=NOW - timedelta(days=2))
    llm = FakeLLM(["So proud of you. Next: speak first once this week.", '{"score": 5, "issues": []}'])

    reply = chat_with_memory(db, llm, "user-1", "I did it, I spoke in the team meeting!", now=NOW)

    system_prompt = llm.calls[0]["messages"][0]["content"]
    assert "froze during the team meeting" in system_prompt
    assert "Sam" in system_prompt
    assert reply.memories_used == 1
    assert reply.confidence == 5
    assert reply.reflected is True
    assert reply.memory_stored is not None
    stored = db.get(MemoryEntry, reply.memory_stored)
    assert stored.type == "achievement"
    assert stored.importance == 4


def test_only_last_six_turns_are_sent(db) -> None:
    history = [ChatTurn(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}") for i in range(10)]
    llm = FakeLLM(["Sounds good."])

    reply = chat_with_memory(db, llm, "user-1", "ok", history, use_reflection=False, now=NOW)

    sent = llm.calls[0]["messages"]
    assert [m["content"] for m in sent[1:-1]] == [f"turn {i}" for i in range(4, 10)]
    assert sent[-1] == {"role": "user", "content": "ok"}
    assert reply.reflected is False
    assert reply.memory_stored is None
    assert len(llm.calls) == 1


def test_low_scoring_draft_is_rewritten(db) -> None:
    llm = FakeLLM(["Just do it.", '{"score": 1, "issues": ["Dismissive"]}', "That sounds hard. Could you try two minutes?"])

    reply = chat_with_memory(db, llm, "user-1", "I can't start", now=NOW)

    assert reply.regenerated is True
    assert reply.reply == "That sounds hard. Could you try two minutes?"
    assert reply.confidence == 2
    assert reply.issues == ["Dismissive"]


def test_empty_draft_is_an_error(db) -> None:
    with pytest.raises(LLMOutputError):
        chat_with_memory(db, FakeLLM([""]), "user-1", "hello", now=NOW)
