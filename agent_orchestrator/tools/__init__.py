"""
Built-in tools and the per-run tool registry.
"""

from .registry import ToolDefinition, ToolRegistry
from . import math_solver, python_executor, search


def default_catalog() -> list[ToolDefinition]:
    """Return the built-in tool catalog: calculator, search, python_execute."""
    return [
        math_solver.build_tool(),
        search.build_tool(),
        python_executor.build_tool(),
    ]


__all__ = ["ToolDefinition", "ToolRegistry", "default_catalog"]
