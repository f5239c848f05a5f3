"""Settings configuration models.

Runtime settings for logging and flow publishing.
"""

from typing import Literal

from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Level for flowform loggers")
    file: str | None = Field(
        default=None, description="Optional path of a rotating JSON log file"
    )


class StructureConfig(BaseModel):
    """Flow publishing policy."""

    allow_unreachable: bool = Field(
        default=False,
        description="Publish flows whose only issues are unreachable nodes",
    )


class Settings(BaseModel):
    """Global settings configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    structure: StructureConfig = Field(default_factory=StructureConfig)
