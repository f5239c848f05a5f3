"""Observability helpers."""

from flowform.observability.logging import configure_from_settings, setup_logging

__all__ = ["setup_logging", "configure_from_settings"]
