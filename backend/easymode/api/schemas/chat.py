"""Schemas for chat and memory search."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatTurnPayload(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    history: List[ChatTurnPayload] = Field(default_factory=list)
    use_reflection: bool = True


class ChatResponse(BaseModel):
    reply: str
    memories_used: int
    memory_stored: Optional[str] = None
    confidence: Optional[int] = None
    reflected: bool
    regenerated: bool
    request_id: str


class MemoryPayload(BaseModel):
    id: str
    type: str
    content: str
    importance: int
    metadata: Dict[str, Any]
    created_at: Optional[datetime]


class MemorySearchResponse(BaseModel):
    memories: List[MemoryPayload]
    request_id: str
