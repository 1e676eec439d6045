"""
Run-level configuration and result types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .messages import Message, Role


class RunStatus(str, Enum):
    """Terminal status of an orchestration run."""

    COMPLETED = "completed"
    TRUNCATED_BY_LIMIT = "truncated-by-limit"
    TIMED_OUT = "timed-out"
    FATAL_ERROR = "fatal-error"


@dataclass(frozen=True)
class RunConfiguration:
    """Bounds for a single orchestration run."""

    max_iterations: int = 20
    max_validation_retries: int = 2
    timeout: float = 60.0
    max_provider_retries: int = 2
    tool_timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.max_validation_retries < 0:
            raise ValueError("max_validation_retries must not be negative")
        if self.max_provider_retries < 0:
            raise ValueError("max_provider_retries must not be negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.tool_timeout is not None and self.tool_timeout <= 0:
            raise ValueError("tool_timeout must be positive when set")


@dataclass(frozen=True)
class RunResult:
    """Final history and status of an orchestration run."""

    messages: tuple[Message, ...]
    status: RunStatus
    iterations: int = 0
    execution_id: Optional[str] = field(default=None, compare=False)

    @property
    def answer(self) -> str:
        """Content of the last assistant message, or empty string."""
        for message in reversed(self.messages):
            if message.role is Role.ASSISTANT:
                return message.content
        return ""

    @property
    def tools_used(self) -> list[str]:
        """Unique tool names requested during the run, in call order."""
        seen: set[str] = set()
        names: list[str] = []
        for message in self.messages:
            for call in message.tool_calls:
                if call.name and call.name not in seen:
                    seen.add(call.name)
                    names.append(call.name)
        return names
