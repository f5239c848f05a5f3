"""Per-type node configuration models.

Each node type has its own config class with only the relevant fields.
The Node Type Registry maps a type tag to one of these classes.
"""

import re
from datetime import date
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flowform.nodes.conditions import Condition


class NodeConfig(BaseModel):
    """Base configuration shared by all node types."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Routing nodes pick the next node from their branches instead of a transition
    routing: ClassVar[bool] = False

    def route_branches(self) -> tuple["Branch", ...]:
        """Branches used to pick the next node. Empty for input nodes."""
        return ()


class TextInputConfig(NodeConfig):
    """Configuration for free text nodes."""

    placeholder: str | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=1)
    pattern: str | None = Field(default=None, description="Regex the whole answer must match")

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"Invalid pattern '{value}': {e}") from e
        return value

    @model_validator(mode="after")
    def _check_bounds(self) -> "TextInputConfig":
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(f"min_length ({self.min_length}) > max_length ({self.max_length})")
        return self


class EmailInputConfig(NodeConfig):
    """Configuration for email nodes."""

    placeholder: str | None = None
    allowed_domains: tuple[str, ...] = Field(
        default=(), description="Restrict answers to these domains (empty = any)"
    )

    @field_validator("allowed_domains")
    @classmethod
    def _lowercase(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(d.strip().lower() for d in value)


class NumberInputConfig(NodeConfig):
    """Configuration for numeric nodes."""

    min: int | float | None = None
    max: int | float | None = None
    integer_only: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> "NumberInputConfig":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) > max ({self.max})")
        return self


class ChoiceOption(BaseModel):
    """A selectable option. ``value`` is what gets stored."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class SingleChoiceConfig(NodeConfig):
    """Configuration for single choice nodes."""

    options: tuple[ChoiceOption, ...] = Field(min_length=1)

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_options(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return value
        normalized = []
        for option in value:
            if isinstance(option, str):
                normalized.append({"value": option, "label": option})
            elif isinstance(option, dict) and "label" not in option and "value" in option:
                normalized.append({**option, "label": str(option["value"])})
            else:
                normalized.append(option)
        return normalized

    @field_validator("options")
    @classmethod
    def _unique_values(cls, value: tuple[ChoiceOption, ...]) -> tuple[ChoiceOption, ...]:
        seen: set[str] = set()
        for option in value:
            if option.value in seen:
                raise ValueError(f"Duplicate option value '{option.value}'")
            seen.add(option.value)
        return value

    def option_values(self) -> list[str]:
        return [o.value for o in self.options]


class DatePickerConfig(NodeConfig):
    """Configuration for date nodes. Answers use ISO format (YYYY-MM-DD)."""

    min_date: date | None = None
    max_date: date | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "DatePickerConfig":
        if self.min_date and self.max_date and self.min_date > self.max_date:
            raise ValueError(f"min_date ({self.min_date}) > max_date ({self.max_date})")
        return self


class FileUploadConfig(NodeConfig):
    """Configuration for file upload nodes."""

    max_size_bytes: int | None = Field(default=None, gt=0)
    allowed_types: tuple[str, ...] = Field(
        default=(), description="MIME types, 'image/*' style wildcards allowed"
    )
    allowed_extensions: tuple[str, ...] = Field(default=(), description="e.g. ['.pdf', '.png']")

    @field_validator("allowed_extensions")
    @classmethod
    def _dotted(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value)


class Branch(BaseModel):
    """One outgoing edge of a conditional node. No ``when`` means default."""

    model_config = ConfigDict(frozen=True)

    when: Condition | None = None
    target: str

    @property
    def is_default(self) -> bool:
        return self.when is None


class ConditionalConfig(NodeConfig):
    """Configuration for conditional routing nodes.

    Guarded branches are evaluated in declaration order and the first
    match wins. The default branch must come last.
    """

    routing: ClassVar[bool] = True

    branches: tuple[Branch, ...] = ()

    def route_branches(self) -> tuple[Branch, ...]:
        return self.branches


__all__ = [
    "NodeConfig",
    "TextInputConfig",
    "EmailInputConfig",
    "NumberInputConfig",
    "ChoiceOption",
    "SingleChoiceConfig",
    "DatePickerConfig",
    "FileUploadConfig",
    "Branch",
    "ConditionalConfig",
]
