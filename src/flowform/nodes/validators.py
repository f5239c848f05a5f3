"""Built-in node types and their answer validators.

Every validator receives the node and the raw submitted value and returns
the normalized value to store, or raises a ``ValidationError`` subclass.
Validators are pure: same input, same outcome.

Optional nodes accept an explicit skip (None, or a blank string) before
any type-specific check runs; the stored value is then None.
"""

import math
import re
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from flowform.core.errors import (
    FileConstraintViolation,
    InvalidDate,
    InvalidFormat,
    InvalidNodeForAnswer,
    InvalidOption,
    MissingRequiredAnswer,
    NotANumber,
    OutOfRange,
)
from flowform.core.expression import to_number
from flowform.nodes.configs import (
    ConditionalConfig,
    DatePickerConfig,
    EmailInputConfig,
    FileUploadConfig,
    NumberInputConfig,
    SingleChoiceConfig,
    TextInputConfig,
)
from flowform.nodes.registry import NodeTypeRegistry

if TYPE_CHECKING:
    from flowform.flow.models import Node

# RFC 5322 style local part, dotted domain with a TLD
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)
MAX_EMAIL_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64

ISO_DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class FileHandle(BaseModel):
    """Reference to content staged by the upload collaborator."""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(min_length=1)
    filename: str = Field(min_length=1)
    content_type: str = Field(min_length=1)
    size: int = Field(ge=0, description="Size in bytes")


def is_skip(value: Any) -> bool:
    """Whether a raw value is the explicit skip marker."""
    return value is None or (isinstance(value, str) and not value.strip())


def _skipped(node: "Node", value: Any) -> bool:
    if not is_skip(value):
        return False
    if node.required:
        raise MissingRequiredAnswer(f"'{node.display_name}' is required", node_id=node.id)
    return True


@NodeTypeRegistry.register("text_input", TextInputConfig)
def validate_text(node: "Node", value: Any) -> str | None:
    """Free text, optionally bounded in length and matched against a pattern."""
    if _skipped(node, value):
        return None
    if not isinstance(value, str):
        raise InvalidFormat(f"'{node.display_name}' expects text", node_id=node.id)

    text = value.strip()
    config: TextInputConfig = node.config  # type: ignore[assignment]
    if config.min_length is not None and len(text) < config.min_length:
        raise OutOfRange(
            f"'{node.display_name}' must be at least {config.min_length} characters",
            node_id=node.id,
            min_length=config.min_length,
        )
    if config.max_length is not None and len(text) > config.max_length:
        raise OutOfRange(
            f"'{node.display_name}' must be at most {config.max_length} characters",
            node_id=node.id,
            max_length=config.max_length,
        )
    if config.pattern is not None and not re.fullmatch(config.pattern, text):
        raise InvalidFormat(
            f"'{node.display_name}' does not match the expected format",
            node_id=node.id,
            pattern=config.pattern,
        )
    return text


@NodeTypeRegistry.register("email_input", EmailInputConfig)
def validate_email(node: "Node", value: Any) -> str | None:
    """Email address: local-part@domain.tld. The domain is lower-cased."""
    if _skipped(node, value):
        return None
    if not isinstance(value, str):
        raise InvalidFormat("Please enter a valid email address", node_id=node.id)

    email = value.strip()
    if not EMAIL_REGEX.match(email):
        raise InvalidFormat("Please enter a valid email address", node_id=node.id)

    local, domain = email.rsplit("@", 1)
    if len(email) > MAX_EMAIL_LENGTH or len(local) > MAX_LOCAL_PART_LENGTH:
        raise InvalidFormat("Email address is too long", node_id=node.id)
    if ".." in email or local.startswith(".") or local.endswith("."):
        raise InvalidFormat("Email address cannot contain misplaced dots", node_id=node.id)
    if len(domain.rsplit(".", 1)[-1]) < 2:
        raise InvalidFormat("Email domain must have a valid TLD", node_id=node.id)

    domain = domain.lower()
    config: EmailInputConfig = node.config  # type: ignore[assignment]
    if config.allowed_domains and domain not in config.allowed_domains:
        raise InvalidFormat(
            f"Email must be from: {', '.join(config.allowed_domains)}",
            node_id=node.id,
            domain=domain,
        )
    return f"{local}@{domain}"


@NodeTypeRegistry.register("number_input", NumberInputConfig)
def validate_number(node: "Node", value: Any) -> int | float | None:
    """Finite real number within the optional [min, max] bounds."""
    if _skipped(node, value):
        return None

    number = to_number(value.strip() if isinstance(value, str) else value)
    if number is None or not math.isfinite(number):
        raise NotANumber(f"'{node.display_name}' expects a number", node_id=node.id)

    config: NumberInputConfig = node.config  # type: ignore[assignment]
    if config.integer_only:
        if isinstance(number, float) and not number.is_integer():
            raise NotANumber(f"'{node.display_name}' expects a whole number", node_id=node.id)
        number = int(number)

    if (config.min is not None and number < config.min) or (
        config.max is not None and number > config.max
    ):
        raise OutOfRange(
            f"'{node.display_name}' must be {_bounds(config.min, config.max)}",
            node_id=node.id,
            min=config.min,
            max=config.max,
            value=number,
        )
    return number


@NodeTypeRegistry.register("single_choice", SingleChoiceConfig)
def validate_choice(node: "Node", value: Any) -> str | None:
    """One of the configured option values."""
    if _skipped(node, value):
        return None

    config: SingleChoiceConfig = node.config  # type: ignore[assignment]
    allowed = config.option_values()
    if value not in allowed:
        raise InvalidOption(
            f"'{value}' is not a valid option for '{node.display_name}'",
            node_id=node.id,
            options=allowed,
        )
    return value


@NodeTypeRegistry.register("date_picker", DatePickerConfig)
def validate_date(node: "Node", value: Any) -> str | None:
    """Calendar date, as ``datetime.date`` or a YYYY-MM-DD string."""
    if _skipped(node, value):
        return None

    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str) and ISO_DATE_REGEX.match(value.strip()):
        try:
            parsed = date.fromisoformat(value.strip())
        except ValueError as e:
            raise InvalidDate(f"'{value}' is not a valid date", node_id=node.id) from e
    else:
        raise InvalidDate(
            f"'{node.display_name}' expects a date in YYYY-MM-DD format", node_id=node.id
        )

    config: DatePickerConfig = node.config  # type: ignore[assignment]
    if (config.min_date and parsed < config.min_date) or (
        config.max_date and parsed > config.max_date
    ):
        raise OutOfRange(
            f"'{node.display_name}' must be {_bounds(config.min_date, config.max_date)}",
            node_id=node.id,
            value=parsed.isoformat(),
        )
    return parsed.isoformat()


@NodeTypeRegistry.register("file_upload", FileUploadConfig)
def validate_file(node: "Node", value: Any) -> dict[str, Any] | None:
    """Handle to staged content, checked against size and type constraints."""
    if _skipped(node, value):
        return None

    try:
        handle = value if isinstance(value, FileHandle) else FileHandle.model_validate(value)
    except PydanticValidationError as e:
        raise FileConstraintViolation(
            f"'{node.display_name}' expects a staged file reference", node_id=node.id
        ) from e

    config: FileUploadConfig = node.config  # type: ignore[assignment]
    if config.max_size_bytes is not None and handle.size > config.max_size_bytes:
        raise FileConstraintViolation(
            f"'{handle.filename}' exceeds {config.max_size_bytes} bytes",
            node_id=node.id,
            size=handle.size,
        )
    if config.allowed_types and not any(
        _mime_matches(handle.content_type, allowed) for allowed in config.allowed_types
    ):
        raise FileConstraintViolation(
            f"File type '{handle.content_type}' is not allowed",
            node_id=node.id,
            content_type=handle.content_type,
        )
    extension = PurePosixPath(handle.filename).suffix.lower()
    if config.allowed_extensions and extension not in config.allowed_extensions:
        raise FileConstraintViolation(
            f"File extension '{extension}' is not allowed",
            node_id=node.id,
            extension=extension,
        )
    return handle.model_dump()


def _bounds(low: Any, high: Any) -> str:
    if low is not None and high is not None:
        return f"between {low} and {high}"
    if low is not None:
        return f"at least {low}"
    return f"at most {high}"


def _mime_matches(content_type: str, allowed: str) -> bool:
    content_type = content_type.split(";", 1)[0].strip().lower()
    allowed = allowed.strip().lower()
    if allowed.endswith("/*"):
        return content_type.startswith(allowed[:-1])
    return content_type == allowed


@NodeTypeRegistry.register("conditional", ConditionalConfig)
def validate_conditional(node: "Node", value: Any) -> Any:
    """Routing nodes are advanced by the engine, never answered."""
    raise InvalidNodeForAnswer(
        f"Node '{node.id}' routes automatically and cannot be answered", node_id=node.id
    )
