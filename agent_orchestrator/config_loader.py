"""
Configuration loader for the agent orchestrator.

Loads configuration from YAML files with support for
environment variable interpolation.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import (
    ToolMode,
    ProviderConfig,
    RunDefaultsConfig,
    PythonExecutorConfig,
    SearxngConfig,
    ToolsConfig,
    LoggingConfig,
    LangfuseConfig,
    AppConfig,
    RunConfiguration,
)

logger = logging.getLogger(__name__)

# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# Regex for environment variable interpolation: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

# Singleton cache for app config
_app_config: Optional[AppConfig] = None


def resolve_env_vars(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR} and ${VAR:-default} syntax.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars resolved
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _parse_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _parse_provider_config(data: dict) -> ProviderConfig:
    """Parse provider configuration from dict."""
    mode_str = data.get("tool_mode", "native")
    try:
        tool_mode = ToolMode(mode_str)
    except ValueError:
        raise ValueError(f"Unknown tool mode: {mode_str}")

    return ProviderConfig(
        base_url=data.get("base_url", "https://api.openai.com/v1"),
        model=data.get("model", "gpt-4o-mini"),
        api_key=data.get("api_key") or None,
        temperature=float(data.get("temperature", 0.1)),
        max_tokens=int(data.get("max_tokens", 2048)),
        tool_mode=tool_mode,
        request_timeout=float(data.get("request_timeout", 60.0)),
    )


def _parse_run_defaults(data: dict) -> RunDefaultsConfig:
    """Parse run defaults from dict."""
    return RunDefaultsConfig(
        max_iterations=int(data.get("max_iterations", 20)),
        max_validation_retries=int(data.get("max_validation_retries", 2)),
        timeout=float(data.get("timeout", 60.0)),
        max_provider_retries=int(data.get("max_provider_retries", 2)),
        tool_timeout=_parse_optional_float(data.get("tool_timeout")),
    )


def _parse_tools_config(data: dict) -> ToolsConfig:
    """Parse tools configuration from dict."""
    searxng_data = data.get("searxng", {})
    python_executor_data = data.get("python_executor", {})

    return ToolsConfig(
        searxng=SearxngConfig(
            url=searxng_data.get("url", "http://localhost:8080/search"),
            timeout=int(searxng_data.get("timeout", 30)),
        ),
        python_executor=PythonExecutorConfig(
            url=python_executor_data.get("url", "http://pyexec.cluster:9999/"),
            timeout=int(python_executor_data.get("timeout", 30)),
        ),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse logging configuration from dict."""
    return LoggingConfig(level=data.get("level", "INFO"))


def _parse_langfuse_config(data: dict) -> LangfuseConfig:
    """Parse Langfuse configuration from dict."""
    return LangfuseConfig(
        public_key=data.get("public_key", ""),
        secret_key=data.get("secret_key", ""),
        host=data.get("host", "https://cloud.langfuse.com"),
        debug=_parse_bool(data.get("debug"), default=False),
    )


def parse_app_config(raw_config: dict) -> AppConfig:
    """
    Build an AppConfig from an already-loaded mapping.

    Environment variables are substituted before the sections are parsed.
    """
    raw_config = _substitute_env_vars_recursive(raw_config)

    return AppConfig(
        version=str(raw_config.get("version", "1.0")),
        provider=_parse_provider_config(raw_config.get("provider") or {}),
        run=_parse_run_defaults(raw_config.get("run") or {}),
        tools=_parse_tools_config(raw_config.get("tools") or {}),
        logging=_parse_logging_config(raw_config.get("logging") or {}),
        langfuse=_parse_langfuse_config(raw_config.get("langfuse") or {}),
    )


def load_app_config(path: Optional[str] = None, reload: bool = False) -> AppConfig:
    """
    Load unified application configuration from a YAML file.

    Uses a singleton pattern - subsequent calls return the cached config
    unless reload=True is specified.

    Args:
        path: Path to the YAML configuration file. If None, uses
              CONFIG_PATH env var or the default path (config/config.yaml).
        reload: If True, force reload from disk instead of using cache.

    Returns:
        AppConfig with all configuration loaded. Defaults are used when
        the file does not exist.

    Raises:
        ValueError: If the config is invalid
    """
    global _app_config

    if _app_config is not None and not reload:
        return _app_config

    if path is None:
        path = os.environ.get("CONFIG_PATH", str(DEFAULT_CONFIG_PATH))

    config_path = Path(path)

    if not config_path.exists():
        logger.warning("Configuration not found at %s, using defaults", config_path)
        _app_config = AppConfig()
        return _app_config

    logger.info("Loading configuration from %s", config_path)

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    app_config = parse_app_config(raw_config)
    _app_config = app_config

    logger.debug(
        "Configuration loaded: version=%s, model=%s, tool_mode=%s",
        app_config.version,
        app_config.provider.model,
        app_config.provider.tool_mode.value,
    )
    return app_config


def get_run_configuration(app_config: Optional[AppConfig] = None) -> RunConfiguration:
    """Build the default RunConfiguration from the loaded app config."""
    if app_config is None:
        app_config = load_app_config()
    defaults = app_config.run
    return RunConfiguration(
        max_iterations=defaults.max_iterations,
        max_validation_retries=defaults.max_validation_retries,
        timeout=defaults.timeout,
        max_provider_retries=defaults.max_provider_retries,
        tool_timeout=defaults.tool_timeout,
    )


def reset_config_cache() -> None:
    """Reset the configuration cache, forcing a reload on next access."""
    global _app_config
    _app_config = None
    logger.debug("Configuration cache reset")
