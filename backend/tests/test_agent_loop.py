from __future__ import annotations

from easymode.services.agent_loop import ToolRegistry, run_tool_loop
from easymode.services.llm import ChatResult, ToolCall

from conftest import FakeLLM, tool_reply

SCHEMA = {"type": "object", "properties": {"n": {"type": "integer"}}}


def _counting_registry(seen: list) -> ToolRegistry:
    def record(arguments):
        if "n" not in arguments:
            raise ValueError("n is required")
        seen.append(arguments["n"])
        return f"Recorded {arguments['n']}"

    registry = ToolRegistry()
    registry.register("record", "Record a number", SCHEMA, record)
    return registry


def test_loop_stops_when_model_stops_calling_tools() -> None:
    seen: list = []
    llm = FakeLLM([tool_reply(("record", {"n": 1}), ("record", {"n": 2})), "All done."])

    result = run_tool_loop(llm, [{"role": "user", "content": "go"}], _counting_registry(seen))

    assert seen == [1, 2]
    assert result.iterations == 2
    assert result.tool_calls_executed == 2
    assert result.final_message == "All done."
    assert result.hit_iteration_cap is False
    tool_messages = [m for m in result.transcript if m["role"] == "tool"]
    assert [m["content"] for m in tool_messages] == ["Recorded 1", "Recorded 2"]


def test_loop_terminates_after_ten_iterations() -> None:
    seen: list = []
    llm = FakeLLM(default=tool_reply(("record", {"n": 7})))

    result = run_tool_loop(llm, [{"role": "user", "content": "go"}], _counting_registry(seen))

    assert result.hit_iteration_cap is True
    assert result.iterations == 10
    assert len(llm.calls) == 10
    assert seen == [7] * 10
    assert result.final_message is None


def test_unknown_tools_and_bad_arguments_are_acknowledged() -> None:
    seen: list = []
    bad_json = ChatResult(
        content=None,
        tool_calls=[ToolCall(id="x", name="record", arguments={}, raw_arguments="{not json")],
    )
    llm = FakeLLM([tool_reply(("teleport", {})), bad_json, "ok"])

    result = run_tool_loop(llm, [{"role": "user", "content": "go"}], _counting_registry(seen))

    acknowledgements = [m["content"] for m in result.transcript if m["role"] == "tool"]
    assert acknowledgements[0].startswith("Error: unknown tool 'teleport'")
    assert acknowledgements[1].startswith("Error: invalid arguments for record")
    assert seen == []
    assert result.final_message == "ok"


def test_registry_exposes_function_schemas() -> None:
    registry = _counting_registry([])

    (schema,) = registry.schemas()

    assert schema["type"] == "function"
    assert schema["function"]["name"] == "record"
    assert "record" in registry
