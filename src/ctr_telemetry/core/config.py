"""Collector configuration files.

A file holds a single mapping whose keys are ``TelemetryConfig`` fields; keys
left out keep their defaults (including the ``HOST_PROC`` and
``DOCKER_SOCKET_PATH`` environment overrides).
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

import yaml

from ctr_telemetry.core.schemas import TelemetryConfig

_PARSERS: dict[str, Callable[[IO[str]], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def load_config(path: Path | str) -> TelemetryConfig:
    """Read a collector configuration file.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ValueError: If the suffix is not one of .yaml, .yml or .json
        pydantic.ValidationError: If a filter, limit or log level is invalid
    """
    path = Path(path)
    parser = _PARSERS.get(path.suffix.lower())
    if not path.is_file():
        raise FileNotFoundError(f"Collector config not found: {path}")
    if parser is None:
        supported = ", ".join(sorted(_PARSERS))
        raise ValueError(f"Unsupported config format: {path.suffix} (expected one of {supported})")

    with path.open(encoding="utf-8") as f:
        settings = parser(f)

    # Empty file: every setting at its default
    return TelemetryConfig.model_validate(settings or {})
