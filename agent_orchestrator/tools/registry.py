"""
Tool Registry - per-run lookup table for tool definitions.

A registry is built once per run from the caller-supplied catalog and is
read-only for the rest of the run; nothing here is process-global.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDefinition:
    """Metadata for a tool - defined once, used everywhere."""

    name: str
    description: str
    input_schema: dict = field(default_factory=dict)
    handler: Optional[Callable[[dict], Any]] = None
    formatter: Optional[Callable[[Any], str]] = None


class ToolRegistry:
    """Name-to-definition lookup for one orchestration run."""

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or ():
            self.register(tool)

    @classmethod
    def from_catalog(cls, catalog: Iterable[ToolDefinition]) -> "ToolRegistry":
        """
        Build a registry from a tool catalog, skipping unusable entries.

        A tool needs a name, a description, a schema and a handler to be
        offered to the model; anything else is dropped with a warning.
        """
        registry = cls()
        for tool in catalog:
            if not (tool.name and tool.description and tool.input_schema and tool.handler):
                logger.warning("Skipping incomplete tool definition: %r", tool.name)
                continue
            registry.register(tool)
        return registry

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool with its metadata."""
        if tool.name in self._tools:
            logger.warning("Tool '%s' registered twice, keeping the latest", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name."""
        return self._tools.get(name)

    def all_tools(self) -> dict[str, ToolDefinition]:
        """Get a copy of all registered tools."""
        return self._tools.copy()

    def get_tools_summary(self) -> str:
        """One "- name: description" line per tool."""
        lines = []
        for name, tool in self._tools.items():
            lines.append(f"- {name}: {tool.description}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
