"""Memory-aware coaching chat."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from easymode.core.errors import LLMOutputError
from easymode.observability.evaluation import SAFETY, SPECIFICITY, run_evaluations
from easymode.observability.tracing import record_output, trace
from easymode.services.behavior_profiler import SqlHistoryProvider, analyze_behavior
from easymode.services.llm import LLMClient
from easymode.services.memory_store import MemoryStore, format_memories_for_prompt, should_store_as_memory
from easymode.services.reflection import reflect
from easymode.services.user_service import get_or_create_user, load_user_context

logger = logging.getLogger(__name__)

MEMORY_LIMIT = 5
HISTORY_TURNS = 6
ALLOWED_ROLES = {"user", "assistant"}


@dataclass
class ChatTurn:
    role: str
    content: str


@dataclass
class ChatReply:
    reply: str
    memories_used: int
    memory_stored: Optional[str] = None
    confidence: Optional[int] = None
    reflected: bool = False
    regenerated: bool = False
    issues: List[str] = field(default_factory=list)


def build_system_prompt(user_block: str, profile_summary: str, memories_block: str) -> str:
    return (
        "You are Easy Mode, a warm and practical confidence coach. Keep replies short (under 120 words), "
        "acknowledge how the user feels, and end with one small concrete next step. "
        "Never give medical advice.\n\n"
        f"{user_block}\n\nBehavior profile: {profile_summary}\n\n"
        f"What you remember about this user:\n{memories_block}"
    )


def chat_with_memory(
    db: Session,
    llm: LLMClient,
    user_id: str,
    message: str,
    history: Sequence[ChatTurn] = (),
    *,
    use_reflection: bool = True,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> ChatReply:
    """
    One chat turn.

    Pulls up to five relevant memories into the system prompt, sends the last
    six turns plus the new message, optionally runs self-reflection on the
    draft, then decides independently whether the user's message is worth
    remembering. LLM failures propagate to the caller.
    """
    now = now or datetime.now(timezone.utc)
    store = MemoryStore(db)
    memories = store.retrieve(user_id, message, limit=MEMORY_LIMIT, now=now)
    context = load_user_context(db, user_id)
    profile = analyze_behavior(user_id, SqlHistoryProvider(db), now=now)
    system_prompt = build_system_prompt(
        context.prompt_block(),
        profile.summary(),
        format_memories_for_prompt(memories),
    )

    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for turn in list(history)[-HISTORY_TURNS:]:
        if turn.role in ALLOWED_ROLES and turn.content:
            messages.append({"role": turn.role, "content": turn.content})
    messages.append({"role": "user", "content": message})

    with trace(
        "chat.reply",
        metadata={"memories": len(memories), "history_turns": len(history), "reflection": use_reflection},
        user_id=user_id,
        request_id=request_id,
        input={"message": message},
        tags=["chat"],
    ) as chat_trace:
        draft = (llm.chat(messages).content or "").strip()
        if not draft:
            raise LLMOutputError("Empty chat reply from model")
        reply = ChatReply(reply=draft, memories_used=len(memories))

        if use_reflection:
            reflection = reflect(llm, message, draft, system_prompt=system_prompt)
            reply.reply = reflection.response
            reply.confidence = reflection.confidence
            reply.reflected = True
            reply.regenerated = reflection.regenerated
            reply.issues = list(reflection.critique.issues)

        scores: List[Dict[str, Any]] = []
        if chat_trace is not None:
            scores = run_evaluations(
                llm,
                [(SPECIFICITY, {"response": reply.reply}), (SAFETY, {"response": reply.reply})],
            )
        record_output(
            chat_trace,
            {"reply": reply.reply, "regenerated": reply.regenerated, "confidence": reply.confidence},
            scores=scores,
        )

    decision = should_store_as_memory(message)
    if decision is not None:
        get_or_create_user(db, user_id)
        reply.memory_stored = store.store(
            user_id,
            decision.type,
            message,
            metadata={"source": "chat"},
            importance=decision.importance,
            now=now,
        )
        logger.info("Stored %s memory for user %s from chat", decision.type, user_id)
    return reply
