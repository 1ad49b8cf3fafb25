"""Checks module - collection cycles producing transport groups."""

from __future__ import annotations

from ctr_telemetry.checks.container import (
    ContainerCheck,
    create_container_check,
    format_container,
    format_containers,
)
from ctr_telemetry.checks.orchestrator import ecs_metadata, kubernetes_metadata

__all__ = [
    "ContainerCheck",
    "create_container_check",
    "ecs_metadata",
    "format_container",
    "format_containers",
    "kubernetes_metadata",
]
