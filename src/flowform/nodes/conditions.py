"""Condition models used by conditional nodes.

Conditions are a discriminated union on ``op``:

    {op: greater_than, node: age, value: 17}
    {op: all, conditions: [...]}
    {op: not, condition: {...}}
    {op: expression, expr: "age >= 18 AND country == 'ES'"}
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from flowform.core.expression import expression_references

AnswerOperator = Literal[
    "equals",
    "not_equals",
    "contains",
    "greater_than",
    "less_than",
    "greater_or_equal",
    "less_or_equal",
    "in",
    "is_answered",
]


class AnswerCondition(BaseModel):
    """Compare the answer collected for ``node`` with ``value``."""

    model_config = ConfigDict(frozen=True)

    op: AnswerOperator
    node: str = Field(description="Node id whose answer is tested")
    value: Any = Field(default=None, description="Operand (ignored by is_answered)")

    def referenced_nodes(self) -> set[str]:
        return {self.node}


class AllCondition(BaseModel):
    """True when every nested condition holds."""

    model_config = ConfigDict(frozen=True)

    op: Literal["all"]
    conditions: tuple["Condition", ...] = Field(min_length=1)

    def referenced_nodes(self) -> set[str]:
        return set().union(*(c.referenced_nodes() for c in self.conditions))


class AnyCondition(BaseModel):
    """True when at least one nested condition holds."""

    model_config = ConfigDict(frozen=True)

    op: Literal["any"]
    conditions: tuple["Condition", ...] = Field(min_length=1)

    def referenced_nodes(self) -> set[str]:
        return set().union(*(c.referenced_nodes() for c in self.conditions))


class NotCondition(BaseModel):
    """Negation of a nested condition."""

    model_config = ConfigDict(frozen=True)

    op: Literal["not"]
    condition: "Condition"

    def referenced_nodes(self) -> set[str]:
        return self.condition.referenced_nodes()


class ExpressionCondition(BaseModel):
    """Textual expression, see ``flowform.core.expression``."""

    model_config = ConfigDict(frozen=True)

    op: Literal["expression"]
    expr: str = Field(min_length=1)

    def referenced_nodes(self) -> set[str]:
        return expression_references(self.expr)


Condition = Annotated[
    AnswerCondition | AllCondition | AnyCondition | NotCondition | ExpressionCondition,
    Field(discriminator="op"),
]

AllCondition.model_rebuild()
AnyCondition.model_rebuild()
NotCondition.model_rebuild()


__all__ = [
    "AnswerOperator",
    "AnswerCondition",
    "AllCondition",
    "AnyCondition",
    "NotCondition",
    "ExpressionCondition",
    "Condition",
]
