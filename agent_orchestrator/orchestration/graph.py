"""
GraphController: the orchestration state machine.

    INVOKING --message--> ROUTING --tool calls--> EXECUTING --results--> INVOKING
                             |
                             +--no tool calls--> TERMINAL

The controller owns the run's message history. An assistant message and
the results of its tool calls are committed together after execution, so
cancelling the run mid-turn leaves the history exactly as it was before
the turn began.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from ..models import Message, RunResult, RunStatus
from .executor import ToolExecutor
from .invoker import ModelInvoker

logger = logging.getLogger(__name__)

LIMIT_MESSAGE = (
    "I reached the maximum number of tool-calling steps ({limit}) before finishing. "
    "The tool results gathered so far are above."
)


class GraphState(str, Enum):
    INVOKING = "invoking"
    ROUTING = "routing"
    EXECUTING = "executing"
    TERMINAL = "terminal"


class GraphController:
    """Alternates model turns and tool execution until a terminal state."""

    def __init__(
        self,
        invoker: ModelInvoker,
        executor: ToolExecutor,
        initial_history: Sequence[Message],
        max_iterations: int = 20,
        execution_id: Optional[str] = None,
    ):
        self.invoker = invoker
        self.executor = executor
        self.max_iterations = max_iterations
        self.state = GraphState.INVOKING
        self.status: Optional[RunStatus] = None
        self.iterations = 0
        self._history: list[Message] = list(initial_history)
        self._pending = None
        self._id_prefix = f"[{execution_id}] " if execution_id else ""

    @property
    def history(self) -> tuple[Message, ...]:
        """Snapshot of the committed history."""
        return tuple(self._history)

    def _transition(self, state: GraphState) -> None:
        logger.debug("%s%s -> %s", self._id_prefix, self.state.value, state.value)
        self.state = state

    def terminate(self, status: RunStatus, notice: Optional[str] = None) -> None:
        """Force the terminal state, optionally appending an assistant notice."""
        if notice:
            self._history.append(Message.assistant(notice))
        self.status = status
        self._transition(GraphState.TERMINAL)

    def result(self) -> RunResult:
        return RunResult(
            messages=self.history,
            status=self.status or RunStatus.FATAL_ERROR,
            iterations=self.iterations,
        )

    async def run(self) -> RunResult:
        """Drive the state machine to TERMINAL and return the result."""
        while self.state is not GraphState.TERMINAL:
            if self.state is GraphState.INVOKING:
                await self._invoke()
            elif self.state is GraphState.ROUTING:
                self._route()
            elif self.state is GraphState.EXECUTING:
                await self._execute()
        self.log_trace_summary()
        return self.result()

    async def _invoke(self) -> None:
        self._pending = await self.invoker.invoke(self.history)
        if self._pending.provider_failed:
            logger.error("%sModel provider unavailable, ending run", self._id_prefix)
            self.terminate(RunStatus.FATAL_ERROR, self._pending.message.content)
            return
        self._transition(GraphState.ROUTING)

    def _route(self) -> None:
        message = self._pending.message
        if message.has_tool_calls:
            self._transition(GraphState.EXECUTING)
            return
        self._history.append(message)
        self.terminate(RunStatus.COMPLETED)

    async def _execute(self) -> None:
        message = self._pending.message
        results = await self.executor.execute(message.tool_calls, self._pending.report)
        self._history.append(message)
        self._history.extend(Message.tool_result(r) for r in results)
        self._pending = None
        self.iterations += 1

        if self.iterations >= self.max_iterations:
            logger.warning("%sMax iterations (%d) reached", self._id_prefix, self.max_iterations)
            self.terminate(
                RunStatus.TRUNCATED_BY_LIMIT, LIMIT_MESSAGE.format(limit=self.max_iterations)
            )
            return
        self._transition(GraphState.INVOKING)

    def log_trace_summary(self) -> None:
        """Log a compact trace summary."""
        p = self._id_prefix
        logger.info("%s%s", p, "─" * 50)
        logger.info("%sTRACE SUMMARY: status=%s, iterations=%d", p, self.status.value, self.iterations)
        step = 0
        for message in self._history:
            if message.has_tool_calls:
                step += 1
                logger.info("%sStep %d: %s", p, step, ", ".join(c.name for c in message.tool_calls))
            elif message.tool_call_id is not None:
                preview = message.content[:80] + "..." if len(message.content) > 80 else message.content
                logger.info("%s  %s -> %s", p, message.tool_call_id, preview)
        logger.info("%s%s", p, "─" * 50)
