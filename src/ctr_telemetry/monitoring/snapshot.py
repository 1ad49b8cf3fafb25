"""Snapshot cache and cgroup correlation.

Discovering containers needs a Docker API round trip plus a walk over every
host process, so the correlated list (runtime metadata + cgroup handle +
static limits) is cached for a short TTL. Raw counters are never cached: every
call re-reads them from the cgroup handles into new ``Container`` values, and
the cached ``CorrelatedBase`` records stay untouched for the next call.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol

import psutil

from ctr_telemetry.core.constants import (
    CONTAINERS_CACHE_KEY,
    DEFAULT_CACHE_DURATION,
    DEFAULT_HOST_PROC,
)
from ctr_telemetry.core.errors import CgroupReadError, CollectionError
from ctr_telemetry.monitoring.base import Container, CorrelatedBase, LiveSample, NetworkStat
from ctr_telemetry.monitoring.cgroups import ContainerCgroup
from ctr_telemetry.monitoring.network import collect_network_stats
from ctr_telemetry.monitoring.runtime import DockerRuntimeAdapter

logger = logging.getLogger(__name__)


class CgroupReader(Protocol):
    def cgroups_for_pids(self, pids: Iterable[int]) -> dict[str, ContainerCgroup]: ...


class TTLCache:
    """Thread-safe keyed store whose entries expire after a per-entry TTL."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None, False
            return value, True

    def set_with_ttl(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class ContainerCollector:
    """Produces the per-call container list with live cgroup counters.

    Example:
        ```python
        collector = ContainerCollector(adapter, CgroupV2Reader())
        containers = collector.containers()
        ```
    """

    def __init__(
        self,
        adapter: DockerRuntimeAdapter,
        cgroup_reader: CgroupReader,
        cache: TTLCache | None = None,
        cache_duration: float = DEFAULT_CACHE_DURATION,
        host_proc: Path = Path(DEFAULT_HOST_PROC),
        pid_lister: Callable[[], list[int]] = psutil.pids,
    ) -> None:
        """Initialize the collector.

        Args:
            adapter: Runtime adapter used on cache misses
            cgroup_reader: Maps host pids to container cgroups
            cache: Keyed TTL store (a private one is created if omitted)
            cache_duration: TTL of the correlated container list in seconds
            host_proc: Root of the proc filesystem
            pid_lister: Returns all host pids
        """
        self._adapter = adapter
        self._cgroup_reader = cgroup_reader
        self._cache = cache if cache is not None else TTLCache()
        self._cache_duration = cache_duration
        self._host_proc = Path(host_proc)
        self._pid_lister = pid_lister

    def containers(self) -> list[Container]:
        """Return every tracked container with freshly read counters.

        Containers whose counters cannot be read are left out of this call's
        result only.

        Raises:
            CollectionError: If processes or containers cannot be listed
        """
        cached, hit = self._cache.get(CONTAINERS_CACHE_KEY)
        if hit and not isinstance(cached, list):
            logger.error("Invalid cache format, forcing a cache miss")
            hit = False
        if hit:
            bases: list[CorrelatedBase] = cached
        else:
            bases = self._correlate()
            self._cache.set_with_ttl(CONTAINERS_CACHE_KEY, bases, self._cache_duration)

        result: list[Container] = []
        for base in bases:
            sample = self._sample(base)
            if sample is not None:
                result.append(Container.from_parts(base, sample))
        return result

    def _correlate(self) -> list[CorrelatedBase]:
        """Discover containers and attach cgroup handles and static limits."""
        try:
            pids = self._pid_lister()
        except (psutil.Error, OSError) as e:
            raise CollectionError(f"could not get pids: {e}") from e

        try:
            cgroups = self._cgroup_reader.cgroups_for_pids(pids)
        except OSError as e:
            raise CollectionError(f"could not get cgroups for pids: {e}") from e

        correlated: list[CorrelatedBase] = []
        for base in self._adapter.list_containers():
            cgroup = cgroups.get(base.id)
            if cgroup is None:
                # Not cgroup-tracked yet, typically just created
                continue

            cpu_limit = 0.0
            mem_limit = 0
            try:
                cpu_limit = cgroup.cpu_limit()
            except CgroupReadError as e:
                logger.debug(f"cgroup cpu limit: {e}")
            try:
                mem_limit = cgroup.mem_limit()
            except CgroupReadError as e:
                logger.debug(f"cgroup memory limit: {e}")

            correlated.append(
                dataclasses.replace(base, cgroup=cgroup, cpu_limit=cpu_limit, mem_limit=mem_limit)
            )
        logger.debug(f"Correlated {len(correlated)} containers with cgroups")
        return correlated

    def _sample(self, base: CorrelatedBase) -> LiveSample | None:
        """Read live counters for one container, or None to drop it this call."""
        cgroup = base.cgroup
        if cgroup is None:
            logger.debug(f"Container id {base.id} has an empty cgroup, skipping")
            return None

        try:
            memory = cgroup.mem()
            cpu = cgroup.cpu()
            io = cgroup.io()
            started_at = cgroup.start_time()
        except CgroupReadError as e:
            logger.debug(f"cgroup stats for {base.id[:12]}: {e}")
            return None

        network = NetworkStat()
        if self._adapter.collect_network:
            mappings = self._adapter.network_mappings(base.id)
            if mappings is not None and cgroup.pids:
                try:
                    network = collect_network_stats(
                        base.id, cgroup.pids[0], mappings, self._host_proc
                    )
                except (OSError, ValueError) as e:
                    logger.debug(f"Could not collect network stats for container {base.id}: {e}")
                    return None

        return LiveSample(
            cpu=cpu,
            memory=memory,
            io=io,
            network=network,
            started_at=started_at,
            pids=list(cgroup.pids),
        )
