"""
Agent Orchestrator - agentic tool-calling loop for OpenAI-compatible models.

This package provides:
- Message, tool and run data models
- Tool-call repair, validation and sequential execution
- A state machine driving model turns and tool execution under a deadline
- An OpenAI-compatible model provider and built-in tools
- Interactive CLI for testing
"""

from .models import Message, RunConfiguration, RunResult, RunStatus, ToolCallRequest, ToolCallResult
from .orchestrator import RunSupervisor, run, run_async, run_query
from .tools.registry import ToolDefinition, ToolRegistry

__all__ = [
    "Message",
    "RunConfiguration",
    "RunResult",
    "RunStatus",
    "ToolCallRequest",
    "ToolCallResult",
    "RunSupervisor",
    "ToolDefinition",
    "ToolRegistry",
    "run",
    "run_async",
    "run_query",
]

__version__ = "0.1.0"
