"""Textual expressions for conditional routing.

Supports:
- Comparison: age >= 18, country == 'ES', plan != "free"
- Boolean: cond1 AND cond2, cond1 OR cond2, NOT cond
- Grouping: (cond1 OR cond2) AND cond3
- Existence: node_id (truthy check on the collected answer)

Identifiers are node ids; their value is the collected answer. Unknown
identifiers resolve to None so expressions never raise on missing answers.
"""

import operator
import re
from typing import Any

# Longer operators first to avoid partial matches
_OPERATORS = {
    ">=": operator.ge,
    "<=": operator.le,
    "!=": operator.ne,
    "==": operator.eq,
    ">": operator.gt,
    "<": operator.lt,
}

_KEYWORD = re.compile(r"\s+(AND|OR)\s+", re.IGNORECASE)
_NOT_PREFIX = re.compile(r"^NOT\s+", re.IGNORECASE)
_KEYWORD_LITERALS: dict[str, Any] = {"true": True, "false": False, "none": None, "null": None}


def evaluate_expression(expr: str, answers: dict[str, Any]) -> bool:
    """Evaluate a boolean expression against collected answers.

    AND binds tighter than OR. Both are split only outside parentheses.

    Examples:
        >>> evaluate_expression("age > 18", {"age": 25})
        True
        >>> evaluate_expression("NOT plan == 'free'", {"plan": "pro"})
        True
        >>> evaluate_expression("age > 18", {})
        False
    """
    expr = _strip_outer_parens(expr.strip())
    if not expr:
        return False

    for keyword in ("OR", "AND"):
        parts = _split_top_level(expr, keyword)
        if len(parts) > 1:
            results = (evaluate_expression(part, answers) for part in parts)
            return any(results) if keyword == "OR" else all(results)

    not_match = _NOT_PREFIX.match(expr)
    if not_match:
        return not evaluate_expression(expr[not_match.end() :], answers)

    found = _find_operator(expr)
    if found is not None:
        index, op_str = found
        return _evaluate_comparison(
            expr[:index].strip(), expr[index + len(op_str) :].strip(), op_str, answers
        )

    return bool(answers.get(expr))


def expression_references(expr: str) -> set[str]:
    """Return the node ids an expression reads.

    Quoted strings, numbers and the true/false/none keywords are literals;
    every other operand is an answer reference.

    Examples:
        >>> sorted(expression_references("age >= 18 AND NOT (plan == tier)"))
        ['age', 'plan', 'tier']
    """
    expr = _strip_outer_parens(expr.strip())
    if not expr:
        return set()

    for keyword in ("OR", "AND"):
        parts = _split_top_level(expr, keyword)
        if len(parts) > 1:
            return set().union(*(expression_references(part) for part in parts))

    not_match = _NOT_PREFIX.match(expr)
    if not_match:
        return expression_references(expr[not_match.end() :])

    found = _find_operator(expr)
    if found is None:
        return set() if _is_literal(expr) else {expr}
    index, op_str = found
    operands = (expr[:index].strip(), expr[index + len(op_str) :].strip())
    return {operand for operand in operands if operand and not _is_literal(operand)}


def _find_operator(expr: str) -> tuple[int, str] | None:
    """Locate the first comparison operator outside quoted literals."""
    quote: str | None = None
    for i, ch in enumerate(expr):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        else:
            for op_str in _OPERATORS:
                if expr.startswith(op_str, i):
                    return i, op_str
    return None


def _strip_outer_parens(expr: str) -> str:
    while expr.startswith("(") and expr.endswith(")") and _matching_paren(expr) == len(expr) - 1:
        expr = expr[1:-1].strip()
    return expr


def _matching_paren(expr: str) -> int:
    depth = 0
    for i, ch in enumerate(expr):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _split_top_level(expr: str, keyword: str) -> list[str]:
    """Split on AND/OR keywords that are not inside parentheses or quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth == 0:
            match = _KEYWORD.match(expr, i)
            if match and match.group(1).upper() == keyword:
                parts.append(expr[start:i])
                start = match.end()
                i = match.end()
                continue
        i += 1
    parts.append(expr[start:])
    return parts


def _evaluate_comparison(
    left_expr: str,
    right_expr: str,
    op_str: str,
    answers: dict[str, Any],
) -> bool:
    """Evaluate a single comparison expression."""
    op_func = _OPERATORS[op_str]
    left_val = answers.get(left_expr)
    right_val = _parse_literal(right_expr, answers)

    # Equality operators are None-safe
    if op_str in ("==", "!="):
        left_num, right_num = to_number(left_val), to_number(right_val)
        if left_num is not None and right_num is not None:
            return bool(op_func(left_num, right_num))
        return bool(op_func(left_val, right_val))

    if left_val is None:
        return False

    left_num = to_number(left_val)
    right_num = to_number(right_val)
    if left_num is not None and right_num is not None:
        return bool(op_func(left_num, right_num))

    # ISO dates compare correctly as strings
    if isinstance(left_val, str) and isinstance(right_val, str):
        return bool(op_func(left_val, right_val))

    return False


def to_number(val: Any) -> float | int | None:
    """Try to convert value to number. Booleans are not numbers."""
    if isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return val
    if isinstance(val, str):
        try:
            return float(val) if any(c in val for c in ".eE") else int(val)
        except ValueError:
            return None
    return None


def _is_quoted(expr: str) -> bool:
    return len(expr) >= 2 and expr[0] == expr[-1] and expr[0] in ("'", '"')


def _is_literal(expr: str) -> bool:
    return _is_quoted(expr) or to_number(expr) is not None or expr.lower() in _KEYWORD_LITERALS


def _parse_literal(expr: str, answers: dict[str, Any]) -> Any:
    """Parse a value expression (literal or answer reference)."""
    if _is_quoted(expr):
        return expr[1:-1]

    num = to_number(expr)
    if num is not None:
        return num

    lowered = expr.lower()
    if lowered in _KEYWORD_LITERALS:
        return _KEYWORD_LITERALS[lowered]

    return answers.get(expr)
