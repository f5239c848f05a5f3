"""Condition evaluation for conditional routing.

Branches are tried in declaration order and the first guarded branch whose
condition holds wins. When none holds, the default branch fires.

Evaluation is total and side-effect free: a comparison against an answer
that has not been collected is simply false.
"""

import logging
import operator
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from flowform.core.errors import UnresolvableBranchError
from flowform.core.expression import evaluate_expression, to_number
from flowform.nodes.conditions import (
    AllCondition,
    AnswerCondition,
    AnyCondition,
    Condition,
    ExpressionCondition,
    NotCondition,
)
from flowform.nodes.configs import Branch

logger = logging.getLogger(__name__)

_MISSING = object()


def _equals(answer: Any, expected: Any) -> bool:
    answer_num, expected_num = to_number(answer), to_number(expected)
    if answer_num is not None and expected_num is not None:
        return answer_num == expected_num
    return bool(answer == expected)


def _contains(answer: Any, expected: Any) -> bool:
    if answer is None or expected is None:
        return False
    if isinstance(answer, (list, tuple, set)):
        return expected in answer
    return str(expected) in str(answer)


def _numeric(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(answer: Any, expected: Any) -> bool:
        answer_num, expected_num = to_number(answer), to_number(expected)
        if answer_num is None or expected_num is None:
            return False
        return bool(op(answer_num, expected_num))

    return compare


def _member(answer: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set)):
        return False
    return any(_equals(answer, candidate) for candidate in expected)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "not_equals": lambda answer, expected: not _equals(answer, expected),
    "contains": _contains,
    "greater_than": _numeric(operator.gt),
    "less_than": _numeric(operator.lt),
    "greater_or_equal": _numeric(operator.ge),
    "less_or_equal": _numeric(operator.le),
    "in": _member,
    "is_answered": lambda answer, expected: answer is not None,
}


def evaluate_condition(condition: Condition, answers: Mapping[str, Any]) -> bool:
    """Evaluate one condition against the answers collected so far.

    Args:
        condition: Condition model from a conditional node's branch
        answers: Mapping of node id -> normalized answer value

    Returns:
        Whether the condition holds.
    """
    if isinstance(condition, AnswerCondition):
        answer = answers.get(condition.node, _MISSING)
        if answer is _MISSING:
            return False
        return _OPERATORS[condition.op](answer, condition.value)

    if isinstance(condition, AllCondition):
        return all(evaluate_condition(c, answers) for c in condition.conditions)

    if isinstance(condition, AnyCondition):
        return any(evaluate_condition(c, answers) for c in condition.conditions)

    if isinstance(condition, NotCondition):
        return not evaluate_condition(condition.condition, answers)

    if isinstance(condition, ExpressionCondition):
        return evaluate_expression(condition.expr, dict(answers))

    raise TypeError(f"Unsupported condition: {type(condition).__name__}")


def evaluate_branches(branches: Sequence[Branch], answers: Mapping[str, Any]) -> str:
    """Pick the target of the first matching branch.

    Guarded branches are evaluated in order and evaluation stops at the
    first match. The default branch fires only when nothing matched.

    Raises:
        UnresolvableBranchError: No branch matched and there is no default
    """
    default: Branch | None = None
    for index, branch in enumerate(branches):
        if branch.when is None:
            if default is None:
                default = branch
            continue
        if evaluate_condition(branch.when, answers):
            logger.debug(
                f"Branch {index} matched -> '{branch.target}'",
                extra={"branch_index": index, "target": branch.target},
            )
            return branch.target

    if default is None:
        raise UnresolvableBranchError(
            "No branch matched and no default branch is defined",
            context={"branch_count": len(branches)},
        )
    logger.debug(f"No branch matched, using default -> '{default.target}'")
    return default.target

