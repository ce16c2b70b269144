"""Memory-aware chat and memory search endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from easymode.api.deps import require_user_id
from easymode.api.schemas.chat import ChatRequest, ChatResponse, MemoryPayload, MemorySearchResponse
from easymode.db.deps import get_db
from easymode.observability.metrics import log_metric
from easymode.services.chat import ChatTurn, chat_with_memory
from easymode.services.llm import LLMClient, get_llm_client
from easymode.services.memory_store import MemoryStore

router = APIRouter()


@router.post("/chat", response_model=ChatResponse, tags=["chat"])
def post_chat(
    request: Request,
    payload: ChatRequest,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> ChatResponse:
    request_id = getattr(request.state, "request_id", None)
    reply = chat_with_memory(
        db,
        llm,
        user_id,
        payload.message,
        [ChatTurn(role=turn.role, content=turn.content) for turn in payload.history],
        use_reflection=payload.use_reflection,
        request_id=request_id,
    )
    if reply.confidence is not None:
        log_metric("chat.reflection.confidence", reply.confidence, metadata={"regenerated": reply.regenerated})
    return ChatResponse(
        reply=reply.reply,
        memories_used=reply.memories_used,
        memory_stored=reply.memory_stored,
        confidence=reply.confidence,
        reflected=reply.reflected,
        regenerated=reply.regenerated,
        request_id=request_id or "",
    )


@router.get("/memories/search", response_model=MemorySearchResponse, tags=["chat"])
def search_memories(
    request: Request,
    q: str = Query("", description="Free-text query"),
    limit: int = Query(5, ge=1, le=20),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> MemorySearchResponse:
    request_id = getattr(request.state, "request_id", None)
    entries = MemoryStore(db).retrieve(user_id, q, limit=limit)
    return MemorySearchResponse(
        memories=[
            MemoryPayload(
                id=entry.id,
                type=entry.type,
                content=entry.content,
                importance=entry.importance,
                metadata=entry.metadata_json or {},
                created_at=entry.created_at,
            )
            for entry in entries
        ],
        request_id=request_id or "",
    )
