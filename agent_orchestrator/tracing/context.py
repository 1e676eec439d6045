"""
Run-scoped tracing context using Langfuse SDK v3.

One ``TracingContext`` is created per orchestration run. The run itself is
the root span; model calls are generations and tool calls are spans, all
linked to the root through an explicit ``TraceContext``. When tracing is
disabled every context manager still yields an object, it just records
nothing.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

from langfuse.types import TraceContext

from .client import get_tracing_client

logger = logging.getLogger(__name__)


def _langfuse():
    client = get_tracing_client()
    return client.client if client and client.enabled else None


@dataclass
class _Observation:
    """Shared lifecycle for spans and generations."""

    name: str
    enabled: bool = False
    _context_manager: Any = field(default=None, repr=False)
    _observation: Any = field(default=None, repr=False)
    _start_time: float = field(default=0.0, repr=False)
    _output: Any = field(default=None, repr=False)
    _status: str = field(default="success", repr=False)

    def _open(self, **kwargs) -> None:
        langfuse = _langfuse() if self.enabled else None
        if langfuse is None:
            return
        try:
            self._start_time = time.time()
            self._context_manager = langfuse.start_as_current_observation(name=self.name, **kwargs)
            self._observation = self._context_manager.__enter__()
        except Exception as e:
            logger.warning("Failed to start observation '%s': %s", self.name, e)
            self._observation = None

    def _extra_update(self) -> dict:
        return {}

    def end(self) -> None:
        if self._observation is None:
            return
        try:
            update: dict[str, Any] = {
                "metadata": {
                    "status": self._status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                },
                **self._extra_update(),
            }
            if self._output is not None:
                update["output"] = self._output
            self._observation.update(**update)
            self._context_manager.__exit__(None, None, None)
        except Exception as e:
            logger.warning("Failed to end observation '%s': %s", self.name, e)

    @property
    def observation_id(self) -> Optional[str]:
        return getattr(self._observation, "id", None)

    @property
    def trace_id(self) -> Optional[str]:
        return getattr(self._observation, "trace_id", None)

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status


@dataclass
class SpanContext(_Observation):
    """A span: the run itself or one tool call."""

    def start(
        self,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
        trace_context: Optional[TraceContext] = None,
    ) -> None:
        self._open(as_type="span", input=input, metadata=metadata, trace_context=trace_context)


@dataclass
class GenerationContext(_Observation):
    """A generation: one call to the model provider."""

    _usage: Optional[dict] = field(default=None, repr=False)

    def start(
        self,
        model: str,
        input: Optional[Any] = None,
        model_parameters: Optional[dict] = None,
        trace_context: Optional[TraceContext] = None,
    ) -> None:
        self._open(
            as_type="generation",
            model=model,
            input=input,
            model_parameters=model_parameters,
            trace_context=trace_context,
        )

    def set_usage(
        self,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
        total_tokens: Optional[int] = None,
    ) -> None:
        """Set token usage for the generation."""
        usage = {
            "promptTokens": prompt_tokens,
            "completionTokens": completion_tokens,
            "totalTokens": total_tokens,
        }
        self._usage = {k: v for k, v in usage.items() if v is not None}

    def _extra_update(self) -> dict:
        return {"usage": self._usage} if self._usage else {}


@dataclass
class TracingContext:
    """
    Tracing state for a single orchestration run.

    Usage::

        ctx = TracingContext(execution_id)
        with ctx.run_span("orchestration", input={...}) as run:
            with ctx.generation("model_call_1", model="gpt-4o-mini") as gen:
                ...
            with ctx.span("tool:calculator", input={...}) as span:
                ...
    """

    execution_id: str
    _enabled: bool = field(default=False, repr=False)
    _root: Optional[SpanContext] = field(default=None, repr=False)

    def __post_init__(self):
        client = get_tracing_client()
        self._enabled = client is not None and client.enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get_trace_context(self) -> Optional[TraceContext]:
        """Parent link for child observations, or None outside a run span."""
        if self._root is None:
            return None
        trace_id, span_id = self._root.trace_id, self._root.observation_id
        if not trace_id or not span_id:
            return None
        return TraceContext(trace_id=trace_id, parent_span_id=span_id)

    @contextmanager
    def run_span(
        self,
        name: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
    ) -> Generator[SpanContext, None, None]:
        """Root span covering the whole run."""
        root = SpanContext(name=name, enabled=self._enabled)
        run_metadata = {"execution_id": self.execution_id, **(metadata or {})}
        root.start(input=input, metadata=run_metadata)
        self._root = root
        try:
            yield root
        finally:
            root.end()
            self._root = None

    @contextmanager
    def span(
        self,
        name: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
    ) -> Generator[SpanContext, None, None]:
        span_ctx = SpanContext(name=name, enabled=self._enabled)
        span_ctx.start(input=input, metadata=metadata, trace_context=self.get_trace_context())
        try:
            yield span_ctx
        finally:
            span_ctx.end()

    @contextmanager
    def generation(
        self,
        name: str,
        model: str,
        input: Optional[Any] = None,
        model_parameters: Optional[dict] = None,
    ) -> Generator[GenerationContext, None, None]:
        gen_ctx = GenerationContext(name=name, enabled=self._enabled)
        gen_ctx.start(
            model=model,
            input=input,
            model_parameters=model_parameters,
            trace_context=self.get_trace_context(),
        )
        try:
            yield gen_ctx
        finally:
            gen_ctx.end()
