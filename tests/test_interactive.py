"""
Tests for the interactive CLI argument handling and single-query mode.
"""

import json
from unittest.mock import patch

from agent_orchestrator import interactive
from agent_orchestrator.models import Message, RunResult, RunStatus, ToolMode


def finished_run() -> RunResult:
    return RunResult(
        messages=(Message.user("What is 2+2?"), Message.assistant("4")),
        status=RunStatus.COMPLETED,
        execution_id="exec-cli",
    )


class TestProviderOverrides:
    def test_no_overrides_keeps_config(self):
        args = interactive.build_parser().parse_args([])
        provider = interactive.provider_config_from_args(args)
        assert provider == interactive.config.provider

    def test_overrides_applied(self):
        args = interactive.build_parser().parse_args(
            ["--model", "qwen", "--base-url", "http://llm:8000/v1", "--tool-mode", "prompt"]
        )
        provider = interactive.provider_config_from_args(args)
        assert provider.model == "qwen"
        assert provider.base_url == "http://llm:8000/v1"
        assert provider.tool_mode is ToolMode.PROMPT


class TestSingleQuery:
    """``-q`` runs one query and exits."""

    @patch("agent_orchestrator.interactive.ask", return_value=finished_run())
    def test_prints_answer_and_status(self, mock_ask, capsys):
        interactive.main(["-q", "What is 2+2?"])

        out = capsys.readouterr().out
        assert "4" in out
        assert "[status: completed]" in out
        history = mock_ask.call_args.args[0]
        assert history == [Message.user("What is 2+2?")]

    @patch("agent_orchestrator.interactive.ask", return_value=finished_run())
    def test_json_output(self, mock_ask, capsys):
        interactive.main(["-q", "What is 2+2?", "--json"])

        output = json.loads(capsys.readouterr().out)
        assert output["answer"] == "4"
        assert output["status"] == "completed"
        assert output["messages"][1] == {"role": "assistant", "content": "4"}


class TestTrace:
    def test_no_result(self, capsys):
        interactive.print_trace(None)
        assert "No trace available" in capsys.readouterr().out

    def test_prints_history(self, capsys):
        interactive.print_trace(finished_run())
        out = capsys.readouterr().out
        assert "exec-cli" in out
        assert "assistant" in out


class TestCommands:
    """Slash commands in the REPL."""

    def test_quit_stops(self, capsys):
        cli = interactive.InteractiveCLI()
        assert cli.handle_command("/QUIT") is False
        assert "Goodbye" in capsys.readouterr().out

    def test_clear_resets_history(self):
        cli = interactive.InteractiveCLI()
        cli.history = [Message.user("old")]
        cli.last_result = finished_run()

        assert cli.handle_command("/clear") is True
        assert cli.history == []
        assert cli.last_result is None

    def test_unknown_command(self, capsys):
        assert interactive.InteractiveCLI().handle_command("/dance") is True
        assert "Unknown command: /dance" in capsys.readouterr().out

    def test_tools_lists_builtin_catalog(self, capsys):
        interactive.InteractiveCLI().handle_command("/tools")
        out = capsys.readouterr().out
        assert "- calculator:" in out
        assert "- python_execute:" in out
