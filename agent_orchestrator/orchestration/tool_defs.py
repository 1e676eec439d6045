"""
Rendering of a run's tool catalog for the model.

``build_tool_definitions`` produces the OpenAI function-calling payload used
in native tool mode. ``build_tools_prompt_block`` embeds the same payload in
text for prompt tool mode, together with the ``<tool_call>`` convention that
``repair`` parses back into structured calls.
"""

import json
import logging

from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

TOOLS_PROMPT_TEMPLATE = """
# Tools

You can call functions to help answer the user.

The available function signatures are listed inside <tools></tools> XML tags:
<tools>
{signatures}
</tools>

To call a function, reply with a JSON object holding its name and arguments inside <tool_call></tool_call> XML tags, one block per call:
<tool_call>
{{"name": <function-name>, "arguments": <args-json-object>}}
</tool_call>"""


def build_tool_definitions(registry: ToolRegistry) -> list[dict]:
    """
    Build OpenAI function-calling tool definitions, in registration order.

    The tool's ``input_schema`` is advertised unchanged as ``parameters``.
    """
    definitions = [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in registry.all_tools().values()
    ]
    logger.debug("Built %d tool definitions", len(definitions))
    return definitions


def build_tools_prompt_block(definitions: list[dict]) -> str:
    """Text block appended to the system prompt in prompt tool mode.

    Each definition is rendered as compact JSON on its own line.
    """
    signatures = "\n".join(json.dumps(d, separators=(",", ":")) for d in definitions)
    return TOOLS_PROMPT_TEMPLATE.format(signatures=signatures)
