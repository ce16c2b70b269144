"""
Append-only memory journal with keyword retrieval.

Retrieval only looks at the user's 20 most recent entries, so older memories
drop out of reach no matter how relevant they are. The store/skip classifier
is intentionally crude keyword matching, not NLP.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from easymode.db.models.memory import MemoryEntry
from easymode.db.types import as_utc

logger = logging.getLogger(__name__)

MEMORY_TYPES = ("conversation", "achievement", "setback", "insight", "preference")
RECENCY_WINDOW = 20
RECENT_BONUS = 2
RECENT_AGE = timedelta(hours=24)
IMPORTANCE_WEIGHT = 0.5
DEFAULT_IMPORTANCE = 3
LONG_MESSAGE_CHARS = 150
LONG_MESSAGE_IMPORTANCE = 2

# Checked in order; the first category with a hit wins.
MEMORY_KEYWORDS = [
    ("achievement", 4, ["i did it", "completed", "finished", "accomplished", "achieved", "proud", "nailed", "succeeded"]),
    ("setback", 4, ["failed", "struggled", "struggling", "couldn't", "gave up", "missed", "too scared", "anxious", "quit"]),
    ("insight", 3, ["i realized", "i learned", "i noticed", "figured out", "it turns out", "now i understand"]),
    ("preference", 3, ["i prefer", "i like", "i love", "i hate", "i don't like", "works best", "better for me"]),
]


@dataclass
class MemoryDecision:
    type: str
    importance: int


def should_store_as_memory(message: str) -> MemoryDecision | None:
    lowered = (message or "").lower()
    for memory_type, importance, keywords in MEMORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return MemoryDecision(type=memory_type, importance=importance)
    if len(message or "") > LONG_MESSAGE_CHARS:
        return MemoryDecision(type="conversation", importance=LONG_MESSAGE_IMPORTANCE)
    return None


def relevance_score(entry: MemoryEntry, query_words: Sequence[str], now: datetime) -> float:
    content_words = set((entry.content or "").lower().split())
    overlap = sum(1 for word in query_words if word in content_words)
    score = overlap + (entry.importance or 0) * IMPORTANCE_WEIGHT
    created = as_utc(entry.created_at)
    if created is not None and now - created < RECENT_AGE:
        score += RECENT_BONUS
    return score


class MemoryStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def store(
        self,
        user_id: str,
        type: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        importance: int = DEFAULT_IMPORTANCE,
        now: Optional[datetime] = None,
    ) -> str:
        if type not in MEMORY_TYPES:
            raise ValueError(f"Unknown memory type: {type}")
        entry = MemoryEntry(
            user_id=user_id,
            type=type,
            content=content,
            metadata_json=dict(metadata or {}),
            importance=max(1, min(5, int(importance))),
            created_at=now or datetime.now(timezone.utc),
        )
        self.db.add(entry)
        self.db.commit()
        logger.debug("Stored %s memory %s for user %s", type, entry.id, user_id)
        return entry.id

    def recent(self, user_id: str, limit: int = RECENCY_WINDOW) -> List[MemoryEntry]:
        return (
            self.db.query(MemoryEntry)
            .filter(MemoryEntry.user_id == user_id)
            .order_by(MemoryEntry.created_at.desc())
            .limit(limit)
            .all()
        )

    def retrieve(
        self,
        user_id: str,
        query: str,
        limit: int = 5,
        now: Optional[datetime] = None,
    ) -> List[MemoryEntry]:
        now = now or datetime.now(timezone.utc)
        query_words = (query or "").lower().split()
        candidates = self.recent(user_id)
        ranked = sorted(candidates, key=lambda entry: -relevance_score(entry, query_words, now))
        return ranked[:limit]


def format_memories_for_prompt(entries: Sequence[MemoryEntry]) -> str:
    if not entries:
        return "No stored memories yet."
    lines = []
    for entry in entries:
        created = as_utc(entry.created_at)
        when = created.date().isoformat() if created else "unknown date"
        lines.append(f"- [{entry.type}, {when}] {entry.content}")
    return "\n".join(lines)
