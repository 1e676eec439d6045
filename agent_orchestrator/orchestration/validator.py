"""
Validation of requested tool calls against the run's tool catalog.

Each call gets a verdict: ok, structurally invalid, unknown tool, or
schema-invalid arguments. Structural problems are the only ones the invoker
asks the model to correct; unknown and schema-invalid calls are answered with
per-call error results by the executor.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from jsonschema import validators
from jsonschema.exceptions import SchemaError

from ..models import Message, ToolCallRequest
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

MAX_SCHEMA_ERRORS = 5


class CallVerdict(str, Enum):
    OK = "ok"
    STRUCTURAL = "structural"
    UNKNOWN = "unknown"
    SCHEMA = "schema"


@dataclass(frozen=True)
class CallValidation:
    """Verdict for one tool call."""

    call: ToolCallRequest
    verdict: CallVerdict
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.verdict is CallVerdict.OK


@dataclass(frozen=True)
class ValidationReport:
    """Verdicts for every call of one assistant message, in call order."""

    calls: tuple[CallValidation, ...] = ()

    @property
    def valid(self) -> bool:
        return all(c.ok for c in self.calls)

    @property
    def structurally_valid(self) -> bool:
        return not any(c.verdict is CallVerdict.STRUCTURAL for c in self.calls)

    def problems(self) -> list[str]:
        """Human readable description of every failing call."""
        return [c.message for c in self.calls if not c.ok]


def _format_schema_path(path) -> str:
    return ".".join(str(part) for part in path)


def check_arguments(arguments: dict, schema: dict) -> list[str]:
    """
    Validate tool arguments against a JSON Schema.

    Missing required keys are always reported. Full validation uses the
    validator class matching the schema's ``$schema`` draft; a schema that
    is itself invalid falls back to the required-key check only.
    """
    missing = [key for key in schema.get("required", []) if key not in arguments]
    if missing:
        return [f"missing required argument(s): {', '.join(missing)}"]

    validator_cls = validators.validator_for(schema)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as exc:
        logger.debug("Unusable input schema, checking required keys only: %s", exc.message)
        return []

    errors: list[str] = []
    for issue in validator_cls(schema).iter_errors(arguments):
        path = _format_schema_path(issue.absolute_path)
        errors.append(f"{path}: {issue.message}" if path else issue.message)
        if len(errors) >= MAX_SCHEMA_ERRORS:
            break
    return errors


def validate_call(call: ToolCallRequest, registry: ToolRegistry) -> CallValidation:
    """Validate a single tool call."""
    if not call.id:
        return CallValidation(call, CallVerdict.STRUCTURAL, f"Tool call '{call.name}' has no id")
    if not call.name:
        return CallValidation(call, CallVerdict.STRUCTURAL, f"Tool call '{call.id}' has no tool name")
    if not isinstance(call.arguments, dict):
        return CallValidation(
            call,
            CallVerdict.STRUCTURAL,
            f"Arguments for '{call.name}' must be a JSON object, got {type(call.arguments).__name__}",
        )

    tool = registry.get(call.name)
    if tool is None:
        return CallValidation(call, CallVerdict.UNKNOWN, f"Unknown tool '{call.name}'")

    errors = check_arguments(call.arguments, tool.input_schema)
    if errors:
        return CallValidation(
            call,
            CallVerdict.SCHEMA,
            f"Invalid arguments for '{call.name}': {'; '.join(errors)}",
        )
    return CallValidation(call, CallVerdict.OK)


def validate_message(message: Message, registry: ToolRegistry) -> ValidationReport:
    """Validate every tool call of an assistant message."""
    return ValidationReport(tuple(validate_call(call, registry) for call in message.tool_calls))
