"""Core module - configuration, schemas and errors."""

from __future__ import annotations

from ctr_telemetry.core.config import load_config
from ctr_telemetry.core.constants import (
    CONTAINERS_CACHE_KEY,
    DEFAULT_CACHE_DURATION,
    DEFAULT_INVALIDATION_INTERVAL,
    DEFAULT_MAX_PER_GROUP,
)
from ctr_telemetry.core.errors import (
    CgroupReadError,
    CollectionError,
    FilterConfigError,
    RuntimeUnavailableError,
    TelemetryError,
)
from ctr_telemetry.core.schemas import (
    ContainerGroup,
    ContainerHealth,
    ContainerState,
    ContainerStats,
    SystemInfo,
    TelemetryConfig,
    collect_system_info,
)

__all__ = [
    "CONTAINERS_CACHE_KEY",
    "DEFAULT_CACHE_DURATION",
    "DEFAULT_INVALIDATION_INTERVAL",
    "DEFAULT_MAX_PER_GROUP",
    "CgroupReadError",
    "CollectionError",
    "ContainerGroup",
    "ContainerHealth",
    "ContainerState",
    "ContainerStats",
    "FilterConfigError",
    "RuntimeUnavailableError",
    "SystemInfo",
    "TelemetryConfig",
    "TelemetryError",
    "collect_system_info",
    "load_config",
]
