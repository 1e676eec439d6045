"""
Exceptions raised inside the orchestration core.

None of these escape a run: the invoker, executor and supervisor convert
them into error results or terminal statuses.
"""

from typing import Optional


class OrchestratorError(Exception):
    """Base class for orchestrator errors."""


class ProviderError(OrchestratorError):
    """Raised when the model provider returns an unusable response."""


class ToolExecutionError(OrchestratorError):
    """Raised when a tool fails; carries the tool name and the original cause."""

    def __init__(
        self,
        message: str,
        tool_name: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(message)
