"""Configuration module for FlowForm."""

from flowform.config.loader import FlowLoader
from flowform.config.models import FlowFormConfig
from flowform.config.settings import Settings

__all__ = ["FlowFormConfig", "FlowLoader", "Settings"]
