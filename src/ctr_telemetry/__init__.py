"""Container telemetry collector - Core package."""

from __future__ import annotations

from ctr_telemetry.core.schemas import (
    ContainerGroup,
    ContainerStats,
    SystemInfo,
    TelemetryConfig,
)
from ctr_telemetry.monitoring.base import Container, null_container

__version__ = "0.1.0"

__all__ = [
    "Container",
    "ContainerGroup",
    "ContainerStats",
    "SystemInfo",
    "TelemetryConfig",
    "null_container",
    "__version__",
]
