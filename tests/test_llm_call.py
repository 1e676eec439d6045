"""
Tests for the OpenAI-compatible model provider.

The AsyncOpenAI client is replaced with a mock, so requests are inspected
rather than sent.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_orchestrator.errors import ProviderError
from agent_orchestrator.llm_call import LLMClient
from agent_orchestrator.models import (
    Message,
    ProviderConfig,
    Role,
    ToolCallRequest,
    ToolCallResult,
    ToolMode,
)


def openai_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def completion(content="", tool_calls=None, usage=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def make_client(response=None, **settings) -> tuple[LLMClient, MagicMock]:
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(return_value=response or completion("ok"))
    openai_client.close = AsyncMock()
    provider_config = ProviderConfig(base_url="http://llm:8000/v1", model="test-model", **settings)
    return LLMClient(provider_config, client=openai_client), openai_client


def tool_turn_history() -> list[Message]:
    call_a = ToolCallRequest(id="call_1", name="calculator", arguments={"expression": "2+2"})
    call_b = ToolCallRequest(id="call_2", name="search", arguments={"query": "refunds"})
    return [
        Message.system("You are helpful."),
        Message.user("Do two things"),
        Message.assistant("Working on it", tool_calls=[call_a, call_b]),
        Message.tool_result(ToolCallResult(tool_call_id="call_1", content="2+2 = 4")),
        Message.tool_result(ToolCallResult(tool_call_id="call_2", content="Found it")),
    ]


class TestNativeMode:
    """Tools bound through the API ``tools`` parameter."""

    def test_request_includes_tools(self, catalog):
        client, _ = make_client()
        request = client.build_request([Message.user("hi")], catalog)

        assert request["model"] == "test-model"
        assert [t["function"]["name"] for t in request["tools"]] == [
            "calculator",
            "search",
            "boom",
        ]
        assert request["messages"] == [{"role": "user", "content": "hi"}]

    def test_empty_catalog_omits_tools(self):
        client, _ = make_client()
        request = client.build_request([Message.user("hi")], [])
        assert "tools" not in request

    def test_tool_turn_messages(self, catalog):
        client, _ = make_client()
        messages = client.build_request(tool_turn_history(), catalog)["messages"]

        assistant = messages[2]
        assert assistant["tool_calls"][0]["id"] == "call_1"
        assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {
            "expression": "2+2"
        }
        assert messages[3] == {"role": "tool", "tool_call_id": "call_1", "content": "2+2 = 4"}
        assert messages[4]["tool_call_id"] == "call_2"


class TestPromptMode:
    """Tools embedded in the system prompt, calls rendered as text."""

    def test_tools_block_appended_to_first_system_message(self, catalog):
        client, _ = make_client(tool_mode=ToolMode.PROMPT)
        request = client.build_request(tool_turn_history(), catalog)

        assert "tools" not in request
        system = request["messages"][0]
        assert system["role"] == "system"
        assert system["content"].startswith("You are helpful.")
        assert "<tools>" in system["content"]
        assert '"name":"calculator"' in system["content"]

    def test_system_message_created_when_missing(self, catalog):
        client, _ = make_client(tool_mode=ToolMode.PROMPT)
        messages = client.build_request([Message.user("hi")], catalog)["messages"]

        assert messages[0]["role"] == "system"
        assert messages[0]["content"].startswith("# Tools")
        assert messages[1] == {"role": "user", "content": "hi"}

    def test_calls_and_results_rendered_as_text(self, catalog):
        client, _ = make_client(tool_mode=ToolMode.PROMPT)
        messages = client.build_request(tool_turn_history(), catalog)["messages"]

        assert len(messages) == 4
        assistant = messages[2]
        assert assistant["role"] == "assistant"
        assert assistant["content"].startswith("Working on it")
        assert assistant["content"].count("<tool_call>") == 2

        results = messages[3]
        assert results["role"] == "user"
        assert results["content"].count("<tool_response>") == 2
        assert "2+2 = 4" in results["content"]
        assert "Found it" in results["content"]


class TestParseResponse:
    """Tests for converting provider replies to Messages."""

    def test_plain_text(self):
        message = LLMClient.parse_response(SimpleNamespace(content="Hello", tool_calls=None))
        assert message.role is Role.ASSISTANT
        assert message.content == "Hello"
        assert message.tool_calls == ()

    def test_json_arguments_decoded(self):
        reply = SimpleNamespace(
            content=None,
            tool_calls=[openai_tool_call("call_1", "calculator", '{"expression": "2+2"}')],
        )
        message = LLMClient.parse_response(reply)

        assert message.content == ""
        assert message.tool_calls[0].id == "call_1"
        assert message.tool_calls[0].arguments == {"expression": "2+2"}

    def test_non_json_arguments_kept_raw(self):
        reply = SimpleNamespace(
            content="", tool_calls=[openai_tool_call("call_1", "calculator", "2+2")]
        )
        assert LLMClient.parse_response(reply).tool_calls[0].arguments == "2+2"

    def test_empty_arguments_become_empty_object(self):
        reply = SimpleNamespace(content="", tool_calls=[openai_tool_call(None, "search", "")])
        call = LLMClient.parse_response(reply).tool_calls[0]
        assert call.arguments == {}
        assert call.id == ""


class TestInvoke:
    """Tests for LLMClient.invoke."""

    def test_invoke_returns_message_and_usage(self, catalog):
        usage = SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15)
        client, _ = make_client(completion("The answer is 4", usage=usage))

        message = asyncio.run(client.invoke([Message.user("2+2?")], catalog))

        assert message.content == "The answer is 4"
        assert client.last_usage == {
            "prompt_tokens": 12,
            "completion_tokens": 3,
            "total_tokens": 15,
        }

    def test_timeout_is_min_of_request_and_remaining(self, catalog):
        client, openai_client = make_client(request_timeout=60.0)

        asyncio.run(client.invoke([Message.user("hi")], catalog, timeout=5.0))
        assert openai_client.chat.completions.create.call_args.kwargs["timeout"] == 5.0

        asyncio.run(client.invoke([Message.user("hi")], catalog))
        assert openai_client.chat.completions.create.call_args.kwargs["timeout"] == 60.0

    def test_no_choices_raises(self, catalog):
        client, _ = make_client(SimpleNamespace(choices=[], usage=None))
        with pytest.raises(ProviderError):
            asyncio.run(client.invoke([Message.user("hi")], catalog))

    def test_close_swallows_errors(self):
        client, openai_client = make_client()
        openai_client.close.side_effect = RuntimeError("already closed")
        asyncio.run(client.close())
        openai_client.close.assert_awaited_once()
