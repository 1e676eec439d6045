"""
Calculator tool backed by SymPy.

Expressions are parsed with SymPy rather than ``eval`` and must reduce to a
number: free symbols and undefined functions are rejected. Calculator
conveniences such as ``5!``, ``2^16`` and ``sin(30 degrees)`` are accepted.
"""

import logging
import re
from typing import Any, Optional

from sympy import N
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    parse_expr,
    standard_transformations,
    implicit_multiplication_application,
    convert_xor,
    factorial_notation,
)

from .registry import ToolDefinition

logger = logging.getLogger(__name__)

# implicit multiplication, ^ as power, n! as factorial
TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
    factorial_notation,
)

DEGREES_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:degrees?|deg)\b", re.IGNORECASE)

INPUT_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "expression": {
            "type": "string",
            "description": "math expression like 2+2 or sqrt(16)",
        }
    },
    "required": ["expression"],
}


def preprocess_expression(expression: str) -> str:
    """Rewrite degree literals to radians and ``ceil`` to SymPy's ``ceiling``."""
    expression = DEGREES_PATTERN.sub(r"(\1 * pi / 180)", expression)
    return re.sub(r"\bceil\b", "ceiling", expression)


def _outcome(expression, result: Any = None, error: Optional[str] = None) -> dict:
    return {
        "success": error is None,
        "expression": expression,
        "result": result,
        "error": error,
    }


def _to_number(expr):
    """Numeric value of a closed SymPy expression: int, float or complex."""
    value = complex(N(expr))
    if value.imag:
        return value
    real = value.real
    return int(real) if real.is_integer() else real


def calculate(expression: str) -> dict:
    """
    Evaluate a mathematical expression.

    Returns a dict with ``success``, ``expression``, ``result`` and
    ``error``. Failures never raise.

    Examples::

        calculate("2^10")             # 1024
        calculate("5!")               # 120
        calculate("sin(30 degrees)")  # 0.5
        calculate("x + 1")            # error: Unknown symbol: x
    """
    if not expression or not str(expression).strip():
        return _outcome(
            expression,
            error='Expression is empty. Please provide a math expression in format: {"expression": "2+2"}',
        )

    try:
        expr = parse_expr(
            preprocess_expression(str(expression)),
            transformations=TRANSFORMATIONS,
            evaluate=True,
        )
    except SyntaxError as e:
        logger.debug("Could not parse '%s': %s", expression, e)
        return _outcome(expression, error=f"Syntax error: {e}")
    except Exception as e:
        logger.debug("Could not parse '%s': %s", expression, e)
        return _outcome(expression, error=f"Calculation error: {e}")

    undefined = sorted(str(f.func) for f in expr.atoms(AppliedUndef))
    if undefined:
        return _outcome(expression, error=f"Unknown function: {', '.join(undefined)}")
    symbols = sorted(str(s) for s in expr.free_symbols)
    if symbols:
        return _outcome(expression, error=f"Unknown symbol: {', '.join(symbols)}")

    try:
        return _outcome(expression, result=_to_number(expr))
    except (ValueError, TypeError) as e:
        logger.debug("'%s' has no numeric value: %s", expression, e)
        return _outcome(expression, error=str(e))


def format_result_for_llm(calc_result: dict) -> str:
    if not calc_result["success"]:
        return f"Calculation failed: {calc_result['error']}"
    return f"{calc_result['expression']} = {calc_result['result']}"


def _handle_calculate(params: dict) -> dict:
    return calculate(params.get("expression", ""))


def build_tool() -> ToolDefinition:
    """Definition of the ``calculator`` tool."""
    return ToolDefinition(
        name="calculator",
        description="Perform mathematical calculations",
        input_schema=INPUT_SCHEMA,
        handler=_handle_calculate,
        formatter=format_result_for_llm,
    )
