"""Bounded tool-calling loop shared by agentic features."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from easymode.services.llm import LLMClient, ToolCall

logger = logging.getLogger(__name__)

MAX_AGENT_ITERATIONS = 10

ToolHandler = Callable[[Dict[str, Any]], str]


@dataclass
class RegisteredTool:
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: ToolHandler


@dataclass
class AgentLoopResult:
    iterations: int
    tool_calls_executed: int
    final_message: Optional[str]
    hit_iteration_cap: bool
    transcript: List[Dict[str, Any]] = field(default_factory=list)


class ToolRegistry:
    """Maps tool names to a JSON schema and a handler returning an acknowledgement."""

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def register(self, name: str, description: str, parameters: Dict[str, Any], handler: ToolHandler) -> None:
        self._tools[name] = RegisteredTool(name=name, description=description, parameters=parameters, handler=handler)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def schemas(self) -> List[Dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in self._tools.values()
        ]

    def dispatch(self, call: ToolCall) -> str:
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool %s", call.name)
            return f"Error: unknown tool '{call.name}'. Available tools: {', '.join(self._tools)}."
        try:
            return tool.handler(call.arguments)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.info("Tool %s rejected arguments: %s", call.name, exc)
            return f"Error: invalid arguments for {call.name}: {exc}"


def run_tool_loop(
    llm: LLMClient,
    messages: List[Dict[str, Any]],
    registry: ToolRegistry,
    *,
    max_iterations: int = MAX_AGENT_ITERATIONS,
    temperature: Optional[float] = None,
) -> AgentLoopResult:
    """
    Call the model, execute the tools it asks for, and feed results back.

    Stops when the model answers without tool calls or after ``max_iterations``
    model calls, whichever comes first. Hitting the cap is not an error: the
    caller keeps whatever the handlers accumulated. LLM errors propagate.
    """
    transcript = list(messages)
    tools = registry.schemas()
    executed = 0

    for iteration in range(1, max_iterations + 1):
        result = llm.chat(transcript, tools=tools, temperature=temperature)
        if not result.tool_calls:
            return AgentLoopResult(
                iterations=iteration,
                tool_calls_executed=executed,
                final_message=result.content,
                hit_iteration_cap=False,
                transcript=transcript,
            )

        transcript.append(result.as_assistant_message())
        for call in result.tool_calls:
            acknowledgement = registry.dispatch(call)
            executed += 1
            transcript.append({"role": "tool", "tool_call_id": call.id, "content": acknowledgement})

    logger.warning("Agent loop stopped at the %s iteration cap with %s tool calls", max_iterations, executed)
    return AgentLoopResult(
        iterations=max_iterations,
        tool_calls_executed=executed,
        final_message=None,
        hit_iteration_cap=True,
        transcript=transcript,
    )
