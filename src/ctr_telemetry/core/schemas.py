"""Pydantic schemas for the container telemetry collector.

This module defines the data contracts shared across the collector:
the configuration surface and the messages handed to the transport layer.
"""

from __future__ import annotations

import os
import platform
import socket
from enum import Enum
from pathlib import Path
from typing import Any

import psutil
from pydantic import BaseModel, Field, field_validator

from ctr_telemetry.core.constants import (
    DEFAULT_CACHE_DURATION,
    DEFAULT_CGROUP_ROOT,
    DEFAULT_DOCKER_SOCKET,
    DEFAULT_HOST_PROC,
    DEFAULT_INVALIDATION_INTERVAL,
    DEFAULT_MAX_PER_GROUP,
)


class TelemetryConfig(BaseModel):
    """Top-level collector configuration.

    This is the main configuration loaded from YAML/JSON files.

    Attributes:
        hostname: Host identifier attached to every group (defaults to the machine name)
        cache_duration_seconds: TTL of the correlated container list
        collect_network: Resolve container networks and read interface counters
        whitelist: ``"image:<regex>"``/``"name:<regex>"`` patterns that reinstate containers
        blacklist: Patterns that exclude containers
        max_per_group: Maximum containers per transport group
        invalidation_interval_seconds: How often stale cache entries are pruned
    """

    hostname: str = Field(default_factory=socket.gethostname)
    cache_duration_seconds: float = Field(
        default=DEFAULT_CACHE_DURATION, ge=0, description="Correlated container list TTL"
    )
    collect_network: bool = Field(default=True, description="Collect per-container network stats")
    whitelist: list[str] = Field(default_factory=list)
    blacklist: list[str] = Field(default_factory=list)
    max_per_group: int = Field(default=DEFAULT_MAX_PER_GROUP, ge=1)
    invalidation_interval_seconds: float = Field(default=DEFAULT_INVALIDATION_INTERVAL, gt=0)
    check_interval_seconds: float = Field(default=10, gt=0, description="Delay between cycles")
    host_proc: Path = Field(default_factory=lambda: Path(os.environ.get("HOST_PROC", DEFAULT_HOST_PROC)))
    cgroup_root: Path = Field(default=Path(DEFAULT_CGROUP_ROOT))
    docker_socket_path: Path = Field(
        default_factory=lambda: Path(os.environ.get("DOCKER_SOCKET_PATH", DEFAULT_DOCKER_SOCKET))
    )
    log_level: str = Field(default="INFO")

    @field_validator("whitelist", "blacklist")
    @classmethod
    def validate_filter_prefix(cls, v: list[str]) -> list[str]:
        """Ensure every filter names a supported field."""
        for pattern in v:
            if not pattern.startswith(("image:", "name:")):
                raise ValueError(f"filter '{pattern}' must start with 'image:' or 'name:'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class SystemInfo(BaseModel):
    """Static host information attached to every transport group."""

    hostname: str
    os: str = ""
    kernel: str = ""
    cpu_count: int = Field(default=1, ge=1)
    total_memory_bytes: int = Field(default=0, ge=0)


def collect_system_info(hostname: str | None = None) -> SystemInfo:
    """Collect static host information using psutil."""
    return SystemInfo(
        hostname=hostname or socket.gethostname(),
        os=platform.system(),
        kernel=platform.release(),
        cpu_count=psutil.cpu_count(logical=True) or 1,
        total_memory_bytes=psutil.virtual_memory().total,
    )


class ContainerState(str, Enum):
    """Container lifecycle state as reported by the runtime."""

    UNKNOWN = "unknown"
    CREATED = "created"
    RESTARTING = "restarting"
    RUNNING = "running"
    PAUSED = "paused"
    EXITED = "exited"
    DEAD = "dead"

    @classmethod
    def parse(cls, value: str) -> ContainerState:
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class ContainerHealth(str, Enum):
    """Health check status parsed from the runtime status string."""

    UNKNOWN = "unknown"
    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def parse(cls, value: str) -> ContainerHealth:
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class ContainerStats(BaseModel):
    """One container with its rates over the last collection interval.

    CPU percentages are normalized so that one busy core reads 100.
    Byte and packet rates are per second.
    """

    type: str
    id: str
    name: str
    image: str
    cpu_limit: float = Field(default=0.0, ge=0)
    memory_limit: int = Field(default=0, ge=0)
    user_pct: float = Field(default=0.0, ge=0)
    system_pct: float = Field(default=0.0, ge=0)
    total_pct: float = Field(default=0.0, ge=0)
    mem_rss: int = Field(default=0, ge=0)
    mem_cache: int = Field(default=0, ge=0)
    rbps: float = Field(default=0.0, ge=0, description="Block read bytes/s")
    wbps: float = Field(default=0.0, ge=0, description="Block write bytes/s")
    net_rcvd_ps: float = Field(default=0.0, ge=0, description="Packets received/s")
    net_sent_ps: float = Field(default=0.0, ge=0, description="Packets sent/s")
    net_rcvd_bps: float = Field(default=0.0, ge=0, description="Bytes received/s")
    net_sent_bps: float = Field(default=0.0, ge=0, description="Bytes sent/s")
    created: int = 0
    started_at: int = 0
    state: ContainerState = ContainerState.UNKNOWN
    health: ContainerHealth = ContainerHealth.UNKNOWN
    pids: list[int] = Field(default_factory=list)


class ContainerGroup(BaseModel):
    """One size-bounded group of containers handed to the transport layer."""

    host_name: str
    info: SystemInfo
    containers: list[ContainerStats] = Field(default_factory=list)
    group_id: int = Field(default=0, description="Identifier shared by every group of one cycle")
    group_index: int = Field(ge=0)
    group_size: int = Field(ge=1, description="Total number of groups in this cycle")
    kubernetes: dict[str, Any] | None = None
    ecs: dict[str, Any] | None = None
