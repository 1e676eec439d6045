"""
Agent Orchestrator entry points.

``run`` / ``run_async`` execute one orchestration run: a fresh tool
registry, message history, worker thread and deadline per call. The
RunSupervisor wraps the state machine in the run's wall-clock budget and
converts timeouts and unexpected errors into terminal statuses, so callers
always get a RunResult back.
"""

import asyncio
import dataclasses
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

from .models import Message, Role, RunConfiguration, RunResult, RunStatus
from .orchestration import Deadline, GraphController, ModelInvoker, ToolExecutor
from .tools.registry import ToolDefinition, ToolRegistry
from .tracing import TracingContext

if TYPE_CHECKING:
    from .llm_call import ModelProvider

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = (
    "I ran out of time ({timeout:g}s) before finishing this request. "
    "Partial results gathered so far are shown above."
)

FATAL_MESSAGE = "Something went wrong while processing this request. Please try again."


def new_execution_id() -> str:
    return f"exec-{uuid.uuid4().hex[:8]}"


class RunSupervisor:
    """Runs one GraphController under a deadline."""

    def __init__(
        self,
        provider: "ModelProvider",
        registry: ToolRegistry,
        run_config: Optional[RunConfiguration] = None,
        execution_id: Optional[str] = None,
    ):
        self.provider = provider
        self.registry = registry
        self.run_config = run_config or RunConfiguration()
        self.execution_id = execution_id or new_execution_id()

    async def run(self, initial_history: Sequence[Message]) -> RunResult:
        cfg = self.run_config
        deadline = Deadline.after(cfg.timeout)
        tracing_context = TracingContext(self.execution_id)
        worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"tools-{self.execution_id}")

        controller = GraphController(
            invoker=ModelInvoker(
                self.provider,
                self.registry,
                max_validation_retries=cfg.max_validation_retries,
                max_provider_retries=cfg.max_provider_retries,
                deadline=deadline,
                tracing_context=tracing_context,
                execution_id=self.execution_id,
            ),
            executor=ToolExecutor(
                self.registry,
                worker=worker,
                tool_timeout=cfg.tool_timeout,
                deadline=deadline,
                tracing_context=tracing_context,
                execution_id=self.execution_id,
            ),
            initial_history=initial_history,
            max_iterations=cfg.max_iterations,
            execution_id=self.execution_id,
        )

        logger.info(
            "[%s] Starting run: %d message(s), %d tool(s), timeout=%gs",
            self.execution_id,
            len(initial_history),
            len(self.registry),
            cfg.timeout,
        )
        try:
            with tracing_context.run_span(
                name="orchestration",
                input={"query": _last_user_content(initial_history)},
                metadata={"max_iterations": cfg.max_iterations, "timeout": cfg.timeout},
            ) as span:
                result = await self._supervise(controller)
                span.set_output(
                    {
                        "status": result.status.value,
                        "iterations": result.iterations,
                        "answer": result.answer[:500],
                    }
                )
                if result.status is not RunStatus.COMPLETED:
                    span.set_status(result.status.value)
        finally:
            worker.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "[%s] Run finished: status=%s, iterations=%d",
            self.execution_id,
            result.status.value,
            result.iterations,
        )
        return dataclasses.replace(result, execution_id=self.execution_id)

    async def _supervise(self, controller: GraphController) -> RunResult:
        try:
            return await asyncio.wait_for(controller.run(), timeout=self.run_config.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[%s] Run timed out after %gs in state %s",
                self.execution_id,
                self.run_config.timeout,
                controller.state.value,
            )
            controller.terminate(
                RunStatus.TIMED_OUT, TIMEOUT_MESSAGE.format(timeout=self.run_config.timeout)
            )
        except Exception:
            logger.exception("[%s] Run failed with an unexpected error", self.execution_id)
            controller.terminate(RunStatus.FATAL_ERROR, FATAL_MESSAGE)
        controller.log_trace_summary()
        return controller.result()


def _last_user_content(history: Sequence[Message]) -> str:
    for message in reversed(history):
        if message.role is Role.USER:
            return message.content
    return ""


async def run_async(
    initial_history: Sequence[Message],
    tool_catalog: Iterable[ToolDefinition],
    run_config: Optional[RunConfiguration] = None,
    provider: Optional["ModelProvider"] = None,
    execution_id: Optional[str] = None,
) -> RunResult:
    """
    Run one orchestration and return its RunResult.

    Args:
        initial_history: Messages to seed the conversation with.
        tool_catalog: Tools available to this run. Incomplete definitions
            are skipped with a warning.
        run_config: Run bounds; defaults come from the ``run`` config section.
        provider: Model provider; defaults to an ``LLMClient`` built from the
            ``provider`` config section and closed after the run.
        execution_id: Correlation id for logs and traces.
    """
    if run_config is None:
        from .config_loader import get_run_configuration

        run_config = get_run_configuration()

    owned_client = None
    if provider is None:
        from .llm_call import LLMClient

        provider = owned_client = LLMClient()

    supervisor = RunSupervisor(
        provider=provider,
        registry=ToolRegistry.from_catalog(tool_catalog),
        run_config=run_config,
        execution_id=execution_id,
    )
    try:
        return await supervisor.run(initial_history)
    finally:
        if owned_client is not None:
            await owned_client.close()


def run(
    initial_history: Sequence[Message],
    tool_catalog: Iterable[ToolDefinition],
    run_config: Optional[RunConfiguration] = None,
    provider: Optional["ModelProvider"] = None,
    execution_id: Optional[str] = None,
) -> RunResult:
    """Synchronous wrapper around ``run_async``."""
    return asyncio.run(
        run_async(
            initial_history,
            tool_catalog,
            run_config=run_config,
            provider=provider,
            execution_id=execution_id,
        )
    )


def run_query(query: str, run_config: Optional[RunConfiguration] = None) -> RunResult:
    """Convenience function: one user query against the built-in tools."""
    from .tools import default_catalog

    return run([Message.user(query)], default_catalog(), run_config=run_config)
