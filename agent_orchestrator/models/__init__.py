"""
Data models for the agent orchestrator.
"""

from .messages import Message, Role, ToolCallRequest, ToolCallResult
from .run import RunConfiguration, RunResult, RunStatus
from .config import (
    ToolMode,
    ProviderConfig,
    RunDefaultsConfig,
    PythonExecutorConfig,
    SearxngConfig,
    ToolsConfig,
    LoggingConfig,
    LangfuseConfig,
    AppConfig,
)

__all__ = [
    # Conversation models
    "Message",
    "Role",
    "ToolCallRequest",
    "ToolCallResult",
    # Run models
    "RunConfiguration",
    "RunResult",
    "RunStatus",
    # Config models
    "ToolMode",
    "ProviderConfig",
    "RunDefaultsConfig",
    "PythonExecutorConfig",
    "SearxngConfig",
    "ToolsConfig",
    "LoggingConfig",
    "LangfuseConfig",
    "AppConfig",
]
