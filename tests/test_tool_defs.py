"""Tests for tool definitions and the <tools> prompt block."""

import json

from agent_orchestrator.orchestration.tool_defs import (
    build_tool_definitions,
    build_tools_prompt_block,
)
from agent_orchestrator.tools.registry import ToolRegistry


class TestBuildToolDefinitions:
    """Tests for build_tool_definitions."""

    def test_registry_order_and_names(self, registry):
        names = [t["function"]["name"] for t in build_tool_definitions(registry)]
        assert names == ["calculator", "search", "boom"]

    def test_openai_format(self, registry):
        for tool in build_tool_definitions(registry):
            assert tool["type"] == "function"
            func = tool["function"]
            assert set(func) == {"name", "description", "parameters"}
            assert func["parameters"]["type"] == "object"

    def test_schema_passed_through(self, registry, calculator_tool):
        tools = build_tool_definitions(registry)
        assert tools[0]["function"]["parameters"] == calculator_tool.input_schema

    def test_empty_registry(self):
        assert build_tool_definitions(ToolRegistry()) == []


class TestBuildToolsPromptBlock:
    """Tests for build_tools_prompt_block."""

    def test_one_json_object_per_line(self, registry):
        tools = build_tool_definitions(registry)
        block = build_tools_prompt_block(tools)

        lines = block.split("\n")
        start = lines.index("<tools>")
        end = lines.index("</tools>")
        parsed = [json.loads(line) for line in lines[start + 1 : end]]
        assert parsed == tools

    def test_describes_tool_call_convention(self, registry):
        block = build_tools_prompt_block(build_tool_definitions(registry))

        assert "<tool_call>" in block
        assert '{"name": <function-name>, "arguments": <args-json-object>}' in block
