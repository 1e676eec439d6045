"""
Model provider interface for the agent orchestrator.

``ModelProvider`` is the boundary the orchestration core calls: one async
``invoke`` per model turn. ``LLMClient`` implements it against any
OpenAI-compatible endpoint (OpenAI, vLLM, Ollama, SGLang) using the OpenAI
SDK, in one of two tool modes:

- native: tools are bound through the API ``tools`` parameter and calls come
  back in the structured ``tool_calls`` field.
- prompt: tools are described in a ``<tools>`` block appended to the system
  prompt; the model answers with ``<tool_call>`` text which the repair step
  turns into structured calls.
"""

import json
import logging
from typing import Optional, Protocol, Sequence

from openai import AsyncOpenAI

from .config import config
from .errors import ProviderError
from .models import Message, ProviderConfig, Role, ToolCallRequest, ToolMode
from .orchestration.tool_defs import build_tool_definitions, build_tools_prompt_block
from .tools.registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)


class ModelProvider(Protocol):
    """Anything that can turn a history and a tool catalog into one assistant message."""

    model: str

    async def invoke(
        self,
        history: Sequence[Message],
        tools: Sequence[ToolDefinition],
        timeout: Optional[float] = None,
    ) -> Message: ...


def _native_message(message: Message) -> dict:
    """Convert a Message to an OpenAI chat message with structured tool calls."""
    if message.role is Role.TOOL:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content,
        }
    data: dict = {"role": message.role.value, "content": message.content}
    if message.tool_calls:
        data["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.name,
                    "arguments": json.dumps(call.arguments, default=str),
                },
            }
            for call in message.tool_calls
        ]
    return data


def _prompt_messages(history: Sequence[Message], tools_block: str) -> list[dict]:
    """
    Convert a history to plain chat messages for prompt tool mode.

    Assistant calls are rendered back as ``<tool_call>`` text and tool results
    as ``<tool_response>`` user turns; consecutive results share one turn.
    """
    messages: list[dict] = []
    has_system = False
    previous_was_result = False
    for message in history:
        is_result = message.role is Role.TOOL
        if message.role is Role.SYSTEM:
            content = message.content
            if not has_system and tools_block:
                content += tools_block
            has_system = True
            messages.append({"role": "system", "content": content})
        elif is_result:
            block = f"<tool_response>\n{message.content}\n</tool_response>"
            if previous_was_result:
                messages[-1]["content"] += "\n" + block
            else:
                messages.append({"role": "user", "content": block})
        elif message.role is Role.ASSISTANT and message.tool_calls:
            parts = [message.content] if message.content else []
            for call in message.tool_calls:
                payload = json.dumps({"name": call.name, "arguments": call.arguments}, default=str)
                parts.append(f"<tool_call>\n{payload}\n</tool_call>")
            messages.append({"role": "assistant", "content": "\n".join(parts)})
        else:
            messages.append({"role": message.role.value, "content": message.content})
        previous_was_result = is_result

    if not has_system and tools_block:
        messages.insert(0, {"role": "system", "content": tools_block.lstrip()})
    return messages


def _parse_arguments(raw):
    """Decode the JSON argument string; an undecodable string is kept as-is."""
    if not isinstance(raw, str):
        return raw
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Model returned non-JSON tool arguments: %s", raw[:200])
        return raw


class LLMClient:
    """OpenAI-compatible model provider."""

    def __init__(
        self,
        provider_config: Optional[ProviderConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = provider_config or config.provider
        self.model = self.settings.model
        self.tool_mode = self.settings.tool_mode
        self.last_usage: Optional[dict] = None
        self._client = client or AsyncOpenAI(
            base_url=self.settings.base_url,
            api_key=self.settings.api_key or "dummy",  # local servers don't require auth
        )

    def build_request(self, history: Sequence[Message], tools: Sequence[ToolDefinition]) -> dict:
        """Chat completion keyword arguments for one model turn."""
        tool_defs = build_tool_definitions(ToolRegistry(tools)) if tools else []
        create_kwargs: dict = {
            "model": self.model,
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }
        if self.tool_mode is ToolMode.PROMPT:
            tools_block = build_tools_prompt_block(tool_defs) if tool_defs else ""
            create_kwargs["messages"] = _prompt_messages(history, tools_block)
        else:
            create_kwargs["messages"] = [_native_message(m) for m in history]
            if tool_defs:
                create_kwargs["tools"] = tool_defs
        return create_kwargs

    async def invoke(
        self,
        history: Sequence[Message],
        tools: Sequence[ToolDefinition],
        timeout: Optional[float] = None,
    ) -> Message:
        """Call the model once and return its reply as an assistant Message."""
        create_kwargs = self.build_request(history, tools)
        request_timeout = self.settings.request_timeout
        if timeout is not None:
            request_timeout = min(request_timeout, timeout)

        response = await self._client.chat.completions.create(
            timeout=request_timeout, **create_kwargs
        )
        if not response.choices:
            raise ProviderError("Model response contained no choices")

        usage = getattr(response, "usage", None)
        self.last_usage = (
            {
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "total_tokens": usage.total_tokens,
            }
            if usage
            else None
        )
        return self.parse_response(response.choices[0].message)

    @staticmethod
    def parse_response(choice_message) -> Message:
        """Convert an OpenAI response message to a Message."""
        calls = [
            ToolCallRequest(
                id=tool_call.id or "",
                name=tool_call.function.name or "",
                arguments=_parse_arguments(tool_call.function.arguments),
            )
            for tool_call in (choice_message.tool_calls or [])
        ]
        return Message.assistant(content=choice_message.content or "", tool_calls=calls)

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        try:
            await self._client.close()
        except Exception as e:
            logger.debug("Error closing OpenAI client: %s", e)
