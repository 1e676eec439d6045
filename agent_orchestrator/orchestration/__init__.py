"""
Orchestration core: repair, validation, execution, model turns and the
state machine that ties them together.
"""

from .deadline import Deadline
from .executor import ToolExecutor
from .graph import GraphController, GraphState
from .invoker import Invocation, ModelInvoker
from .repair import repair_message
from .tool_defs import build_tool_definitions, build_tools_prompt_block
from .validator import CallVerdict, ValidationReport, validate_message

__all__ = [
    "Deadline",
    "ToolExecutor",
    "GraphController",
    "GraphState",
    "Invocation",
    "ModelInvoker",
    "repair_message",
    "build_tool_definitions",
    "build_tools_prompt_block",
    "CallVerdict",
    "ValidationReport",
    "validate_message",
]
