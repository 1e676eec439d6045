"""
ModelInvoker: one model turn, with repair and bounded retries.

A turn always yields exactly one assistant Message:

1. The provider is called, retrying provider exceptions up to
   ``max_provider_retries`` extra times. Exhausting them returns the
   fallback message flagged ``provider_failed``.
2. Textual pseudo tool calls are repaired into structured calls.
3. The candidate is validated. If any call is structurally invalid, a
   corrective system message is added to a working copy of the history and
   the model is asked again, up to ``max_validation_retries`` times. After
   that the content is returned as plain text with no tool calls.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from ..models import Message
from ..tools.registry import ToolRegistry
from ..tracing import TracingContext
from .deadline import Deadline
from .repair import contains_tool_markup, repair_message, strip_tool_markup
from .validator import ValidationReport, validate_message

if TYPE_CHECKING:
    from ..llm_call import ModelProvider

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I'm sorry, I couldn't reach the language model to complete this request. "
    "Please try again later."
)

CORRECTION_PROMPT = (
    "Your previous reply contained malformed tool calls:\n{problems}\n"
    "Call tools only with a tool name from the provided list and a JSON object "
    "of arguments, or answer in plain text without tool calls."
)


@dataclass(frozen=True)
class Invocation:
    """Outcome of one model turn."""

    message: Message
    report: ValidationReport = ValidationReport()
    provider_failed: bool = False
    attempts: int = 1


class ModelInvoker:
    def __init__(
        self,
        provider: "ModelProvider",
        registry: ToolRegistry,
        max_validation_retries: int = 2,
        max_provider_retries: int = 2,
        deadline: Optional[Deadline] = None,
        tracing_context: Optional[TracingContext] = None,
        execution_id: Optional[str] = None,
    ):
        self.provider = provider
        self.registry = registry
        self.max_validation_retries = max_validation_retries
        self.max_provider_retries = max_provider_retries
        self.deadline = deadline
        self.tracing_context = tracing_context
        self._tools = list(registry.all_tools().values())
        self._id_prefix = f"[{execution_id}] " if execution_id else ""
        self._calls = 0

    async def invoke(self, history: Sequence[Message]) -> Invocation:
        """Produce the next assistant message for ``history``."""
        working = list(history)
        attempts = 0
        for attempt in range(self.max_validation_retries + 1):
            raw = await self._call_provider(working)
            attempts += 1
            if raw is None:
                return Invocation(
                    message=Message.assistant(FALLBACK_MESSAGE),
                    provider_failed=True,
                    attempts=attempts,
                )

            candidate = repair_message(raw)
            report = validate_message(candidate, self.registry)
            if report.structurally_valid and not self._unparsed_markup(candidate):
                if not report.valid:
                    logger.info(
                        "%sRouting invalid tool calls to executor: %s",
                        self._id_prefix,
                        report.problems(),
                    )
                return Invocation(message=candidate, report=report, attempts=attempts)

            problems = report.problems() or ["tool markup could not be parsed"]
            logger.warning(
                "%sMalformed tool calls (attempt %d/%d): %s",
                self._id_prefix,
                attempt + 1,
                self.max_validation_retries + 1,
                problems,
            )
            working = list(history) + [
                Message.assistant(raw.content),
                Message.system(CORRECTION_PROMPT.format(problems="\n".join(f"- {p}" for p in problems))),
            ]

        logger.warning(
            "%sValidation retries exhausted, degrading to plain text answer", self._id_prefix
        )
        content = strip_tool_markup(candidate.content)
        return Invocation(message=Message.assistant(content), attempts=attempts)

    @staticmethod
    def _unparsed_markup(message: Message) -> bool:
        """Tool markup left in text that repair could not turn into calls."""
        return not message.has_tool_calls and contains_tool_markup(message.content)

    async def _call_provider(self, history: list[Message]) -> Optional[Message]:
        """Call the provider with bounded retries; None once they are exhausted."""
        for attempt in range(self.max_provider_retries + 1):
            if self.deadline is not None and self.deadline.expired:
                raise asyncio.TimeoutError("run deadline reached before model call")
            self._calls += 1
            try:
                return await self._traced_invoke(history)
            except Exception as e:
                logger.error(
                    "%sModel call failed (attempt %d/%d): %s",
                    self._id_prefix,
                    attempt + 1,
                    self.max_provider_retries + 1,
                    e,
                )
        return None

    async def _traced_invoke(self, history: list[Message]) -> Message:
        timeout = self.deadline.remaining() if self.deadline is not None else None
        if self.tracing_context is None:
            message = await self.provider.invoke(history, self._tools, timeout=timeout)
            self._log_reply(message)
            return message

        with self.tracing_context.generation(
            name=f"model_call_{self._calls}",
            model=getattr(self.provider, "model", "unknown"),
            input=[m.to_dict() for m in history],
        ) as gen:
            try:
                message = await self.provider.invoke(history, self._tools, timeout=timeout)
            except Exception:
                gen.set_status("error")
                raise
            gen.set_output(message.to_dict())
            usage = getattr(self.provider, "last_usage", None)
            if isinstance(usage, dict):
                gen.set_usage(**usage)
        self._log_reply(message)
        return message

    def _log_reply(self, message: Message) -> None:
        preview = message.content[:100] + "..." if len(message.content) > 100 else message.content
        logger.debug(
            "%sModel reply: %d tool call(s), content=%r",
            self._id_prefix,
            len(message.tool_calls),
            preview,
        )
