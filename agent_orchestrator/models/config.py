"""
Configuration models for the agent orchestrator.

Defines dataclasses for the unified YAML configuration file.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ToolMode(Enum):
    """How the tool catalog is bound to the model."""

    NATIVE = "native"
    PROMPT = "prompt"


@dataclass
class ProviderConfig:
    """Configuration for the model provider endpoint."""
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    temperature: float = 0.1
    max_tokens: int = 2048
    tool_mode: ToolMode = ToolMode.NATIVE
    request_timeout: float = 60.0


@dataclass
class RunDefaultsConfig:
    """Default bounds applied to runs that do not pass their own."""
    max_iterations: int = 20
    max_validation_retries: int = 2
    timeout: float = 60.0
    max_provider_retries: int = 2
    tool_timeout: Optional[float] = None


@dataclass
class PythonExecutorConfig:
    """Configuration for the Python executor tool."""
    url: str = "http://pyexec.cluster:9999/"
    timeout: int = 30


@dataclass
class SearxngConfig:
    """Configuration for the SearXNG search tool."""
    url: str = "http://localhost:8080/search"
    timeout: int = 30


@dataclass
class ToolsConfig:
    """Configuration for tool endpoints."""
    searxng: SearxngConfig = field(default_factory=SearxngConfig)
    python_executor: PythonExecutorConfig = field(default_factory=PythonExecutorConfig)


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = ""
    secret_key: str = ""
    host: str = "https://cloud.langfuse.com"
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """Check if Langfuse is configured (both keys present)."""
        return bool(self.public_key and self.secret_key)


@dataclass
class AppConfig:
    """
    Unified application configuration container.

    Holds all configuration sections loaded from config/config.yaml.
    """
    version: str = "1.0"
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    run: RunDefaultsConfig = field(default_factory=RunDefaultsConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)

    @property
    def log_level(self) -> str:
        """Shortcut for logging.level."""
        return self.logging.level
