"""
Shared test doubles: a scripted model provider and message builders.
"""

import asyncio
from typing import Any, Callable, Optional, Sequence, Union

from agent_orchestrator.models import Message, ToolCallRequest

Reply = Union[Message, BaseException, Callable[[list], Any]]


class ScriptedProvider:
    """
    Model provider that replays a fixed script of replies.

    Each entry is a Message to return, an exception to raise, or a callable
    receiving the history (sync or async). The last entry repeats once the
    script runs out.
    """

    model = "scripted-model"

    def __init__(self, replies: Sequence[Reply]):
        self.replies = list(replies)
        self.calls: list[dict] = []
        self.last_usage = None

    async def invoke(self, history, tools, timeout: Optional[float] = None) -> Message:
        self.calls.append(
            {"history": list(history), "tools": [t.name for t in tools], "timeout": timeout}
        )
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(list(history))
            if asyncio.iscoroutine(reply):
                reply = await reply
        return reply


def tool_call(name: str, arguments: Any = None, call_id: str = "") -> ToolCallRequest:
    return ToolCallRequest(
        id=call_id or f"call_{name}",
        name=name,
        arguments={} if arguments is None else arguments,
    )


def calls_message(*calls: ToolCallRequest, content: str = "") -> Message:
    return Message.assistant(content=content, tool_calls=list(calls))
