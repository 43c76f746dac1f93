"""
Condition and expression evaluation for control-flow nodes.
"""

import logging
import re
from typing import Any, Optional, Tuple

from jinja2.sandbox import SandboxedEnvironment

from hubflow.utils import coerce_number, is_numeric_string, normalize_number, parse_json_lenient, stringify_value

from .errors import TemplateError, ValidationError
from .template_resolver import TemplateResolver

logger = logging.getLogger('workflow.conditions')

# Checked in this order; the first operator that splits the condition in two wins
OPERATORS = ("==", "!=", "<=", ">=", "<", ">", "contains")

_FALSY = {"", "false", "0", "null", "undefined", "none"}

_NUMBER = r'-?\d+(?:\.\d+)?'
_OPERAND = rf'\(*\s*{_NUMBER}\s*\)*'
_ARITHMETIC_RE = re.compile(rf'^\s*{_OPERAND}(\s*[-+*/%]\s*{_OPERAND})+\s*$')
_LEADING_ZERO_RE = re.compile(r'(?<![\d.])0\d')

_expression_env = SandboxedEnvironment()


def split_condition(condition: str) -> Optional[Tuple[str, str, str]]:
    """Split a raw condition into (left, operator, right), or None."""
    for op in OPERATORS:
        parts = condition.split(op)
        if len(parts) == 2:
            return parts[0].strip(), op, parts[1].strip()
    return None


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] in "\"'" and text[-1] in "\"'":
        return text[1:-1]
    return text


def is_truthy(value: Any) -> bool:
    """Truthy coercion for bare condition values."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if value is None:
        return False
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return str(value).strip().lower() not in _FALSY


def compare(left: str, op: str, right: str) -> bool:
    """Compare two resolved operands, numerically when both are numbers."""
    left = _strip_quotes(left)
    right = _strip_quotes(right)

    if op == "contains":
        parsed = parse_json_lenient(left)
        if isinstance(parsed, list):
            return any(stringify_value(item) == right for item in parsed)
        return right in left

    if is_numeric_string(left) and is_numeric_string(right):
        a, b = float(left), float(right)
    else:
        a, b = left, right

    if op == "==":
        return a == b
    if op == "!=":
        return a != b
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    if op == ">=":
        return a >= b
    raise ValueError(f"Unsupported operator: {op}")


def evaluate_condition(condition: str, resolver: TemplateResolver) -> bool:
    """
    Evaluate an if/while condition.

    The raw condition is split on its operator first and each side is
    resolved separately, so operator characters inside variable values do
    not change the comparison. A condition without an operator resolves as
    a whole and is coerced to a boolean. Anything that cannot be evaluated
    is treated as false.
    """
    try:
        parts = split_condition(condition)
        if parts is None:
            return is_truthy(resolver.resolve(condition))
        left, op, right = parts
        return compare(resolver.resolve(left), op, resolver.resolve(right))
    except (TemplateError, ValueError, TypeError) as e:
        logger.warning(f"[CONDITION] Could not evaluate {condition!r}, treating as false: {e}")
        return False


def is_arithmetic(text: str) -> bool:
    return bool(_ARITHMETIC_RE.match(text)) and not _LEADING_ZERO_RE.search(text) and '**' not in text


def evaluate_expression(text: str) -> Any:
    """
    Evaluate a resolved set-node value.

    Arithmetic over numbers (+ - * / % and parentheses) is computed; any
    other text is returned with numeric strings coerced to numbers.

    Raises:
        ValidationError: Division or modulo by zero, unbalanced expression
    """
    if not is_arithmetic(text):
        return coerce_number(text)
    try:
        result = _expression_env.compile_expression(text.strip())()
    except ZeroDivisionError:
        raise ValidationError("Division by zero")
    except Exception as e:
        raise ValidationError(f"Invalid arithmetic expression '{text}': {e}")
    if isinstance(result, float):
        return normalize_number(result)
    return result


def dump_condition_operands(condition: str, resolver: TemplateResolver) -> str:
    """Resolved form of a condition, for step logs."""
    parts = split_condition(condition)
    try:
        if parts is None:
            return resolver.resolve(condition)
        left, op, right = parts
        return f"{resolver.resolve(left)} {op} {resolver.resolve(right)}"
    except TemplateError:
        return condition

