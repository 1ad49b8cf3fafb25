"""Monitoring module - container discovery, correlation and rates.

Components:
- DockerRuntimeAdapter: Lists containers from the Docker API
- CgroupV2Reader: Direct cgroups v2 access
- ContainerCollector: Cached correlation plus live counter refresh

Shared utilities:
- rates: Counter delta and rate helpers
- chunking: Fixed-count partitioning for transport
"""

from __future__ import annotations

from ctr_telemetry.monitoring.base import (
    CgroupIOStat,
    CgroupMemStat,
    CgroupTimesStat,
    Container,
    CorrelatedBase,
    LiveSample,
    NetworkStat,
    NetworkStatus,
    null_container,
)
from ctr_telemetry.monitoring.cgroups import CgroupV2Reader, ContainerCgroup
from ctr_telemetry.monitoring.chunking import group_count, partition
from ctr_telemetry.monitoring.filters import ContainerFilter
from ctr_telemetry.monitoring.images import ImageNameResolver
from ctr_telemetry.monitoring.network import (
    HOST_NETWORK,
    NetworkInterfaceMapping,
    collect_network_stats,
    find_networks,
)
from ctr_telemetry.monitoring.rates import (
    calculate_cpu_percent,
    calculate_rate,
    elapsed_seconds,
)
from ctr_telemetry.monitoring.runtime import DockerRuntimeAdapter, connect_to_docker, parse_health
from ctr_telemetry.monitoring.snapshot import ContainerCollector, TTLCache

__all__ = [
    "HOST_NETWORK",
    "CgroupIOStat",
    "CgroupMemStat",
    "CgroupTimesStat",
    "CgroupV2Reader",
    "Container",
    "ContainerCgroup",
    "ContainerCollector",
    "ContainerFilter",
    "CorrelatedBase",
    "DockerRuntimeAdapter",
    "ImageNameResolver",
    "LiveSample",
    "NetworkInterfaceMapping",
    "NetworkStat",
    "NetworkStatus",
    "TTLCache",
    "calculate_cpu_percent",
    "calculate_rate",
    "collect_network_stats",
    "connect_to_docker",
    "elapsed_seconds",
    "find_networks",
    "group_count",
    "null_container",
    "parse_health",
    "partition",
]
