"""
Tests for YAML configuration loading.
"""

import pytest

from agent_orchestrator.config_loader import (
    get_run_configuration,
    load_app_config,
    parse_app_config,
    reset_config_cache,
    resolve_env_vars,
)
from agent_orchestrator.models import AppConfig, ToolMode


@pytest.fixture(autouse=True)
def fresh_cache():
    reset_config_cache()
    yield
    reset_config_cache()


class TestEnvInterpolation:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_variable_resolved(self, monkeypatch):
        monkeypatch.setenv("ORCH_TEST_MODEL", "local-model")
        assert resolve_env_vars("${ORCH_TEST_MODEL}") == "local-model"

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("ORCH_TEST_UNSET", raising=False)
        assert resolve_env_vars("${ORCH_TEST_UNSET:-fallback}") == "fallback"
        assert resolve_env_vars("${ORCH_TEST_UNSET}") == ""

    def test_embedded_reference(self, monkeypatch):
        monkeypatch.setenv("ORCH_TEST_HOST", "example.com")
        assert resolve_env_vars("http://${ORCH_TEST_HOST}:8080") == "http://example.com:8080"


class TestParseAppConfig:
    """Tests for parse_app_config."""

    def test_empty_mapping_gives_defaults(self):
        cfg = parse_app_config({})

        assert cfg.provider.model == "gpt-4o-mini"
        assert cfg.provider.tool_mode is ToolMode.NATIVE
        assert cfg.run.max_iterations == 20
        assert cfg.langfuse.is_configured is False

    def test_sections_parsed(self, monkeypatch):
        monkeypatch.setenv("ORCH_TEST_TIMEOUT", "15")
        cfg = parse_app_config(
            {
                "provider": {"model": "qwen", "tool_mode": "prompt", "max_tokens": "512"},
                "run": {"timeout": "${ORCH_TEST_TIMEOUT}", "tool_timeout": "5", "max_iterations": 4},
                "tools": {"searxng": {"url": "http://search/"}},
                "logging": {"level": "DEBUG"},
                "langfuse": {"public_key": "pk", "secret_key": "sk", "debug": "true"},
            }
        )

        assert cfg.provider.tool_mode is ToolMode.PROMPT
        assert cfg.provider.max_tokens == 512
        assert cfg.run.timeout == 15.0
        assert cfg.run.tool_timeout == 5.0
        assert cfg.tools.searxng.url == "http://search/"
        assert cfg.tools.python_executor.timeout == 30
        assert cfg.log_level == "DEBUG"
        assert cfg.langfuse.is_configured
        assert cfg.langfuse.debug is True

    def test_unknown_tool_mode_rejected(self):
        with pytest.raises(ValueError, match="Unknown tool mode"):
            parse_app_config({"provider": {"tool_mode": "telepathy"}})

    def test_empty_tool_timeout_is_none(self):
        assert parse_app_config({"run": {"tool_timeout": ""}}).run.tool_timeout is None


class TestLoadAppConfig:
    """Tests for load_app_config file handling and caching."""

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_app_config(str(tmp_path / "missing.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.provider.base_url == "https://api.openai.com/v1"

    def test_loads_yaml_and_caches(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("provider:\n  model: from-file\nrun:\n  max_iterations: 7\n")

        first = load_app_config(str(path))
        second = load_app_config(str(path.with_name("other.yaml")))

        assert first.provider.model == "from-file"
        assert second is first

    def test_reload_reads_again(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("provider:\n  model: one\n")
        load_app_config(str(path))
        path.write_text("provider:\n  model: two\n")

        assert load_app_config(str(path), reload=True).provider.model == "two"

    def test_config_path_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("logging:\n  level: WARNING\n")
        monkeypatch.setenv("CONFIG_PATH", str(path))

        assert load_app_config().log_level == "WARNING"

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            load_app_config(str(path))

    def test_shipped_config_parses(self, monkeypatch):
        monkeypatch.delenv("CONFIG_PATH", raising=False)
        monkeypatch.delenv("ORCHESTRATOR_TOOL_MODE", raising=False)
        monkeypatch.delenv("ORCHESTRATOR_TIMEOUT", raising=False)

        cfg = load_app_config()

        assert cfg.provider.tool_mode is ToolMode.NATIVE
        assert cfg.run.timeout == 60.0
        assert cfg.run.tool_timeout is None


class TestRunConfiguration:
    """Tests for get_run_configuration."""

    def test_built_from_run_section(self):
        cfg = parse_app_config({"run": {"max_iterations": 3, "timeout": 9}})

        run_config = get_run_configuration(cfg)

        assert run_config.max_iterations == 3
        assert run_config.timeout == 9.0
