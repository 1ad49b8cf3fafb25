"""Shared constants for the container telemetry collector.

Centralized constants to avoid duplication and ensure consistency across modules.
"""

from __future__ import annotations

# Cache key for the correlated container list (one baseline per process).
CONTAINERS_CACHE_KEY = "dockerutil.containers"

# How often the interface-mapping and image-name caches are pruned (seconds).
DEFAULT_INVALIDATION_INTERVAL = 5 * 60

# Correlated container list TTL (seconds). Live metrics are never cached.
DEFAULT_CACHE_DURATION = 10

# Maximum number of containers carried by one transport group.
DEFAULT_MAX_PER_GROUP = 100

# Kernel clock ticks per second for CPU accounting (USER_HZ).
CLOCK_TICKS_PER_SECOND = 100

# Runtime type reported for every container discovered through the Docker API.
DOCKER_RUNTIME_TYPE = "Docker"

DEFAULT_HOST_PROC = "/proc"
DEFAULT_CGROUP_ROOT = "/sys/fs/cgroup"
DEFAULT_DOCKER_SOCKET = "/var/run/docker.sock"
