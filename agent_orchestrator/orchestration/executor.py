"""
Sequential tool execution with per-call fault isolation.

Every requested call produces exactly one ToolCallResult, in request order.
A failing, timing-out or invalid call only affects its own result.
"""

import asyncio
import inspect
import json
import logging
from concurrent.futures import Executor
from typing import Any, Optional, Sequence

from ..errors import ToolExecutionError
from ..models import ToolCallRequest, ToolCallResult
from ..tools.registry import ToolDefinition, ToolRegistry
from ..tracing import TracingContext
from .deadline import Deadline
from .validator import CallVerdict, ValidationReport, validate_call

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def truncate_error(message: str, limit: int = MAX_ERROR_LENGTH) -> str:
    if len(message) > limit:
        return message[:limit] + "..."
    return message


def is_error_payload(result: Any) -> bool:
    """A handler result that reports failure instead of raising."""
    if not isinstance(result, dict):
        return False
    return result.get("success") is False or bool(result.get("error"))


def format_tool_output(tool: ToolDefinition, result: Any) -> str:
    """String content shown to the model for a handler's raw result."""
    if tool.formatter is not None:
        return tool.formatter(result)
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class ToolExecutor:
    """
    Runs the tool calls of one turn, strictly one after the other.

    Synchronous handlers run on ``worker`` (the run's single tool thread)
    so that an abandoned call never blocks the event loop; coroutine
    handlers are awaited directly.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        worker: Optional[Executor] = None,
        tool_timeout: Optional[float] = None,
        deadline: Optional[Deadline] = None,
        tracing_context: Optional[TracingContext] = None,
        execution_id: Optional[str] = None,
    ):
        self.registry = registry
        self.worker = worker
        self.tool_timeout = tool_timeout
        self.deadline = deadline
        self.tracing_context = tracing_context
        self._id_prefix = f"[{execution_id}] " if execution_id else ""

    async def execute(
        self,
        calls: Sequence[ToolCallRequest],
        report: Optional[ValidationReport] = None,
    ) -> list[ToolCallResult]:
        """Execute every call in order and return one result per call."""
        checked = list(report.calls) if report is not None else []
        if len(checked) != len(calls):
            checked = [None] * len(calls)

        results = []
        for call, verdict in zip(calls, checked):
            # verdicts pair with calls by position; ids from the model may collide
            if verdict is None or verdict.call != call:
                verdict = validate_call(call, self.registry)
            results.append(await self.execute_one(call, verdict.verdict, verdict.message))
        return results

    async def execute_one(
        self,
        call: ToolCallRequest,
        verdict: CallVerdict = CallVerdict.OK,
        problem: str = "",
    ) -> ToolCallResult:
        if verdict is CallVerdict.UNKNOWN:
            logger.warning("%sUnknown tool: %s", self._id_prefix, call.name)
            return self._error(call, f"Error: Unknown tool '{call.name}'")
        if verdict is not CallVerdict.OK:
            logger.warning("%sRejected tool call %s: %s", self._id_prefix, call.id, problem)
            return self._error(call, f"Error: {problem}")

        tool = self.registry.get(call.name)
        if self.tracing_context is None:
            return await self._run_tool(call, tool)

        with self.tracing_context.span(name=f"tool:{call.name}", input=call.arguments) as span:
            result = await self._run_tool(call, tool)
            span.set_output({"result": truncate_error(result.content)})
            if result.is_error:
                span.set_status("error")
            return result

    async def _run_tool(self, call: ToolCallRequest, tool: ToolDefinition) -> ToolCallResult:
        logger.debug("%sExecuting tool '%s' (%s)", self._id_prefix, call.name, call.id)
        timeout, deadline_bound = self._timeout()
        try:
            raw_result = await asyncio.wait_for(self._invoke(tool, call.arguments), timeout)
            content = format_tool_output(tool, raw_result)
        except asyncio.TimeoutError:
            if deadline_bound:
                raise
            logger.error("%sTool '%s' timed out after %.1fs", self._id_prefix, call.name, timeout or 0)
            return self._error(call, f"Tool '{call.name}' timed out after {timeout:.1f} seconds")
        except Exception as e:
            failure = e if isinstance(e, ToolExecutionError) else ToolExecutionError(
                str(e) or type(e).__name__, tool_name=call.name, cause=e
            )
            logger.error("%sTool '%s' execution failed: %s", self._id_prefix, call.name, failure)
            return self._error(
                call, f"Tool '{failure.tool_name}' execution error: {truncate_error(str(failure))}"
            )

        if is_error_payload(raw_result):
            logger.info("%sTool '%s' reported an error", self._id_prefix, call.name)
            return self._error(call, truncate_error(content))
        return ToolCallResult(tool_call_id=call.id, content=content, name=call.name)

    async def _invoke(self, tool: ToolDefinition, arguments: dict) -> Any:
        """Call the handler; a timeout raised by the tool itself is a tool failure."""
        try:
            if inspect.iscoroutinefunction(tool.handler):
                return await tool.handler(arguments)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self.worker, tool.handler, arguments)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise ToolExecutionError(
                str(e) or type(e).__name__, tool_name=tool.name, cause=e
            ) from e

    def _timeout(self) -> tuple[Optional[float], bool]:
        """Effective timeout, and whether the run deadline is the binding limit."""
        if self.deadline is None:
            return self.tool_timeout, False
        remaining = self.deadline.remaining()
        if self.tool_timeout is None or remaining <= self.tool_timeout:
            return remaining, True
        return self.tool_timeout, False

    @staticmethod
    def _error(call: ToolCallRequest, content: str) -> ToolCallResult:
        return ToolCallResult(tool_call_id=call.id, content=content, is_error=True, name=call.name)
