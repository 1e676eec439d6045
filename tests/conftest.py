"""
Pytest configuration and fixtures for agent orchestrator tests.

The orchestration tests drive the real state machine with a scripted model
provider (see ``helpers.py``) and small in-process tools, so no network
access is needed.
"""

import pytest

from agent_orchestrator.tools.registry import ToolDefinition, ToolRegistry
from agent_orchestrator.tracing import shutdown_tracing


def _calculator(params: dict) -> dict:
    expression = params["expression"]
    if expression == "2+2":
        return {"success": True, "expression": expression, "result": 4, "error": None}
    return {"success": False, "expression": expression, "result": None, "error": "unsupported"}


def _search(params: dict) -> str:
    return f"Found 1 document for '{params['query']}': refunds within 30 days."


def _boom(params: dict) -> dict:
    raise RuntimeError("tool exploded")


CALCULATOR_SCHEMA = {
    "type": "object",
    "properties": {"expression": {"type": "string"}},
    "required": ["expression"],
}
SEARCH_SCHEMA = {
    "type": "object",
    "properties": {"query": {"type": "string"}},
    "required": ["query"],
}


@pytest.fixture
def calculator_tool() -> ToolDefinition:
    return ToolDefinition(
        name="calculator",
        description="Perform mathematical calculations",
        input_schema=CALCULATOR_SCHEMA,
        handler=_calculator,
        formatter=lambda r: f"{r['expression']} = {r['result']}" if r["success"] else r["error"],
    )


@pytest.fixture
def search_tool() -> ToolDefinition:
    return ToolDefinition(
        name="search",
        description="Search documents",
        input_schema=SEARCH_SCHEMA,
        handler=_search,
    )


@pytest.fixture
def failing_tool() -> ToolDefinition:
    return ToolDefinition(
        name="boom",
        description="Always fails",
        input_schema={"type": "object", "properties": {}},
        handler=_boom,
    )


@pytest.fixture
def catalog(calculator_tool, search_tool, failing_tool) -> list[ToolDefinition]:
    return [calculator_tool, search_tool, failing_tool]


@pytest.fixture
def registry(catalog) -> ToolRegistry:
    return ToolRegistry(catalog)


@pytest.fixture(autouse=True)
def no_tracing():
    """Make sure no tracing client leaks between tests."""
    shutdown_tracing()
    yield
    shutdown_tracing()
