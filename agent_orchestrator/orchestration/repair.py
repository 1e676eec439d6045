"""
Repair of textual pseudo tool calls.

Some models describe a tool call in prose markup instead of using the
structured tool-call field. This module turns that markup back into
ToolCallRequest entries. Everything here is a pure function of the input
message: no I/O, no logging side effects beyond debug output.

Two conventions are recognised::

    <tool_use><name>calculator</name><arguments>{"expression": "2+2"}</arguments></tool_use>

    <tool_call>
    {"name": "calculator", "arguments": {"expression": "2+2"}}
    </tool_call>
"""

import json
import logging
import re
import time
import uuid
from typing import Any, Optional

from ..models import Message, ToolCallRequest

logger = logging.getLogger(__name__)

TOOL_USE_PATTERN = re.compile(
    r"<tool_use>\s*<name>\s*(.*?)\s*</name>\s*<arguments>\s*(.*?)\s*</arguments>\s*</tool_use>",
    re.DOTALL,
)
TOOL_CALL_PATTERN = re.compile(r"<tool_call>\s*(.*?)\s*</tool_call>", re.DOTALL)


def generate_call_id() -> str:
    """Identifier for a repaired call: ``call_<millis>_<9 hex chars>``."""
    return f"call_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def contains_tool_markup(content: str) -> bool:
    """True if the text looks like it embeds a tool invocation."""
    if not content:
        return False
    if "<tool_use>" in content or "<tool_call>" in content:
        return True
    return "<name>" in content and "<arguments>" in content


def _decode_arguments(raw: Any) -> Any:
    """Decode JSON-encoded arguments; anything undecodable is returned as-is."""
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Could not decode tool arguments: %s", text[:200])
            return raw
    return raw


def _parse_tool_use(match: re.Match) -> Optional[ToolCallRequest]:
    name = match.group(1).strip()
    if not name:
        return None
    arguments = _decode_arguments(match.group(2))
    return ToolCallRequest(id=generate_call_id(), name=name, arguments=arguments)


def _parse_tool_call(match: re.Match) -> Optional[ToolCallRequest]:
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.debug("Failed to parse <tool_call> JSON: %s", match.group(1)[:200])
        return None
    if not isinstance(data, dict) or not data.get("name"):
        return None
    arguments = _decode_arguments(data.get("arguments", {}))
    return ToolCallRequest(id=generate_call_id(), name=str(data["name"]), arguments=arguments)


def extract_tool_calls(content: str) -> list[ToolCallRequest]:
    """
    Extract all pseudo tool calls from text, in order of appearance.

    Blocks that cannot be parsed are skipped; they are still stripped from
    the visible content by ``strip_tool_markup``.
    """
    found: list[tuple[int, ToolCallRequest]] = []
    for pattern, parse in (
        (TOOL_USE_PATTERN, _parse_tool_use),
        (TOOL_CALL_PATTERN, _parse_tool_call),
    ):
        for match in pattern.finditer(content):
            request = parse(match)
            if request is not None:
                found.append((match.start(), request))
    found.sort(key=lambda item: item[0])
    return [request for _, request in found]


def strip_tool_markup(content: str) -> str:
    """Remove tool-call blocks from content.

    Handles both complete blocks and incomplete blocks truncated at the
    end of the output.
    """
    result = TOOL_USE_PATTERN.sub("", content)
    result = TOOL_CALL_PATTERN.sub("", result)
    result = re.sub(r"<tool_use>.*$", "", result, flags=re.DOTALL)
    result = re.sub(r"<tool_call>.*$", "", result, flags=re.DOTALL)
    return result.strip()


def repair_message(message: Message) -> Message:
    """
    Convert textual pseudo-calls in an assistant message to structured calls.

    A message that already carries structured calls, or whose text contains
    no tool markup, is returned unchanged (the same object). If markup is
    present but nothing parses, the message is also returned unchanged so
    the validator and retry loop can deal with it.
    """
    if message.has_tool_calls or not contains_tool_markup(message.content):
        return message

    calls = extract_tool_calls(message.content)
    if not calls:
        logger.debug("Tool markup present but no call could be extracted")
        return message

    logger.debug("Repaired %d textual tool call(s): %s", len(calls), [c.name for c in calls])
    return Message.assistant(content=strip_tool_markup(message.content), tool_calls=calls)
