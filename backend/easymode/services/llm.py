"""OpenAI chat/tool-calling wrapper shared by every AI feature."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional

import openai

from easymode.core.config import settings
from easymode.core.errors import LLMConfigurationError, LLMOutputError, LLMServiceError
from easymode.observability.client import get_opik_client

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any]
    raw_arguments: str = ""


@dataclass
class ChatResult:
    content: Optional[str]
    tool_calls: List[ToolCall] = field(default_factory=list)

    def as_assistant_message(self) -> Dict[str, Any]:
        """Render the reply the way the chat API expects it back in the transcript."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.raw_arguments or json.dumps(call.arguments)},
                }
                for call in self.tool_calls
            ]
        return message


class LLMClient:
    """Thin adapter over ``openai.OpenAI`` returning plain dataclasses."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        client: Any = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._client = client or _build_openai_client(api_key)

    def chat(
        self,
        messages: List[Dict[str, Any]],
        *,
        tools: Optional[List[Dict[str, Any]]] = None,
        json_mode: bool = False,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatResult:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            completion = self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            raise LLMServiceError(f"OpenAI request failed: {exc}") from exc

        if not completion.choices:
            raise LLMOutputError("OpenAI returned no choices")
        message = completion.choices[0].message
        return ChatResult(
            content=message.content,
            tool_calls=[_parse_tool_call(call) for call in (getattr(message, "tool_calls", None) or [])],
        )

    def complete_text(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
        result = self.chat(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **kwargs,
        )
        content = (result.content or "").strip()
        if not content:
            raise LLMOutputError("Empty response from model")
        return content

    def complete_json(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> Dict[str, Any]:
        result = self.chat(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            json_mode=True,
            **kwargs,
        )
        return parse_json_object(result.content)


def parse_json_object(content: Optional[str]) -> Dict[str, Any]:
    """Decode a JSON object from model output, tolerating markdown fences."""
    text = _FENCE_RE.sub("", (content or "").strip())
    if not text:
        raise LLMOutputError("Empty response from model")
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise LLMOutputError("Model returned non-JSON content", raw=text) from exc
    if not isinstance(payload, dict):
        raise LLMOutputError("Model returned JSON that is not an object", raw=text)
    return payload


def _parse_tool_call(call: Any) -> ToolCall:
    raw = call.function.arguments or ""
    try:
        arguments = json.loads(raw) if raw else {}
    except ValueError:
        logger.warning("Malformed tool arguments for %s: %r", call.function.name, raw[:200])
        arguments = {}
    if not isinstance(arguments, dict):
        arguments = {}
    return ToolCall(id=call.id, name=call.function.name, arguments=arguments, raw_arguments=raw)


def _build_openai_client(api_key: str) -> Any:
    client = openai.OpenAI(api_key=api_key)
    if get_opik_client() is None:
        return client
    try:
        from opik.integrations.openai import track_openai
    except ImportError:  # pragma: no cover
        return client
    return track_openai(client, project_name=settings.opik_project)


@lru_cache
def _cached_client(api_key: str, model: str, temperature: float) -> LLMClient:
    return LLMClient(api_key=api_key, model=model, temperature=temperature)


def get_llm_client() -> LLMClient:
    """Return the process-wide LLM client, failing fast when no key is configured."""
    if not settings.openai_api_key:
        raise LLMConfigurationError()
    return _cached_client(settings.openai_api_key, settings.openai_model, settings.llm_temperature)
