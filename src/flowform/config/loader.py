"""Loader for YAML flow documents."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from flowform.config.models import FlowFormConfig
from flowform.core.errors import ConfigError

logger = logging.getLogger(__name__)


class FlowLoader:
    """Load FlowFormConfig from YAML files."""

    @staticmethod
    def load(path: Path | str) -> FlowFormConfig:
        """Load flow definitions from a YAML file or directory.

        A directory is read as every ``*.yaml`` file in name order: flows
        are concatenated, settings merged, other top-level keys overwritten.

        Args:
            path: Path to a directory or a single YAML file

        Returns:
            Parsed FlowFormConfig instance

        Raises:
            FileNotFoundError: Path does not exist or holds no YAML files
            ConfigError: YAML is malformed or does not match the schema
            UnknownNodeType: A node declares an unregistered type
        """
        config_path = Path(path)

        if config_path.is_dir():
            files = sorted(config_path.glob("*.yaml"))
            if not files:
                raise FileNotFoundError(f"No flow files found in {config_path}")
            data: dict[str, Any] = {"flows": [], "settings": {}}
            for fpath in files:
                chunk = FlowLoader._read(fpath)
                data["flows"].extend(chunk.get("flows") or [])
                data["settings"].update(chunk.get("settings") or {})
                for k, v in chunk.items():
                    if k not in ("flows", "settings"):
                        data[k] = v
        else:
            if not config_path.exists():
                raise FileNotFoundError(f"Flow file not found: {config_path}")
            data = FlowLoader._read(config_path)

        return FlowLoader.parse(data, source=str(config_path))

    @staticmethod
    def parse(data: dict[str, Any], source: str = "<memory>") -> FlowFormConfig:
        """Validate an already-decoded flow document."""
        try:
            config = FlowFormConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid flow document {source}: {e}", context={"source": source}
            ) from e
        logger.debug(
            f"Loaded {len(config.flows)} flow(s) from {source}",
            extra={"source": source, "flows": [f.id for f in config.flows]},
        )
        return config

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}", context={"source": str(path)}) from e
        if not isinstance(data, dict):
            raise ConfigError(
                f"Flow document {path} must be a mapping", context={"source": str(path)}
            )
        return data
