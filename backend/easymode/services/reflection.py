"""Critique-then-regenerate pass for coaching replies."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from easymode.core.errors import EasyModeError
from easymode.services.llm import LLMClient

logger = logging.getLogger(__name__)

REGENERATION_THRESHOLD = 4
MAX_CONFIDENCE = 5
MIN_CONFIDENCE = 1

CRITIQUE_SYSTEM_PROMPT = (
    "You review replies written by a confidence coach. Score the draft from 1 to 5 against this rubric:\n"
    "- Is it actionable (one clear next step)?\n"
    "- Does it acknowledge how the user feels right now?\n"
    "- Is the tone warm without being saccharine?\n"
    "- Does it follow Easy Mode principles (small steps, progress over perfection)?\n"
    "- Is it safe and free of medical or harmful advice?\n"
    'Respond with JSON: {"score": <1-5>, "issues": ["short issue", ...]}'
)

REGENERATE_SYSTEM_PROMPT = (
    "You are Easy Mode, a warm and practical confidence coach. Rewrite the draft reply so it fixes every "
    "listed issue while keeping what already works. Reply with the improved message only."
)


@dataclass
class Critique:
    score: int
    issues: List[str] = field(default_factory=list)

    @property
    def needs_regeneration(self) -> bool:
        return self.score < REGENERATION_THRESHOLD


@dataclass
class ReflectionResult:
    response: str
    confidence: int
    critique: Critique
    regenerated: bool = False


def critique(llm: LLMClient, user_message: str, draft: str) -> Critique:
    """Grade a draft; an unusable critique counts as a pass so the draft is kept."""
    try:
        payload = llm.complete_json(
            CRITIQUE_SYSTEM_PROMPT,
            f"User message:\n{user_message}\n\nDraft reply:\n{draft}",
            temperature=0,
        )
    except EasyModeError as exc:
        logger.warning("Reflection critique failed, keeping draft: %s", exc)
        return Critique(score=REGENERATION_THRESHOLD)

    try:
        score = int(payload.get("score", REGENERATION_THRESHOLD))
    except (TypeError, ValueError):
        score = REGENERATION_THRESHOLD
    raw_issues = payload.get("issues") or []
    if isinstance(raw_issues, str):
        raw_issues = [raw_issues]
    elif not isinstance(raw_issues, list):
        raw_issues = []
    issues = [str(issue) for issue in raw_issues if issue]
    return Critique(score=max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, score)), issues=issues)


def reflect(
    llm: LLMClient,
    user_message: str,
    draft: str,
    *,
    system_prompt: Optional[str] = None,
) -> ReflectionResult:
    review = critique(llm, user_message, draft)
    if not review.needs_regeneration:
        return ReflectionResult(response=draft, confidence=review.score, critique=review)

    issues = "\n".join(f"- {issue}" for issue in review.issues) or "- The reply scored low on the rubric."
    prompt = (
        f"Original coaching context:\n{system_prompt or 'n/a'}\n\n"
        f"User message:\n{user_message}\n\n"
        f"Draft reply:\n{draft}\n\n"
        f"Issues to fix:\n{issues}"
    )
    try:
        improved = llm.complete_text(REGENERATE_SYSTEM_PROMPT, prompt)
    except EasyModeError as exc:
        logger.warning("Reflection regeneration failed, keeping draft: %s", exc)
        return ReflectionResult(response=draft, confidence=review.score, critique=review)

    return ReflectionResult(
        response=improved,
        confidence=min(review.score + 1, MAX_CONFIDENCE),
        critique=review,
        regenerated=True,
    )
