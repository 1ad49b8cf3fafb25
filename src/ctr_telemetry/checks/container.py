"""Container check: one collection cycle from discovery to transport groups.

Each run collects the current containers, computes rates against the
previous run's containers and splits the result into size-bounded groups.
The first run only records a baseline and emits nothing.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

import psutil

from ctr_telemetry.checks.orchestrator import ecs_metadata, kubernetes_metadata
from ctr_telemetry.core.errors import CollectionError
from ctr_telemetry.core.schemas import (
    ContainerGroup,
    ContainerHealth,
    ContainerState,
    ContainerStats,
    SystemInfo,
    TelemetryConfig,
    collect_system_info,
)
from ctr_telemetry.monitoring.base import Container, null_container
from ctr_telemetry.monitoring.cgroups import CgroupV2Reader
from ctr_telemetry.monitoring.chunking import group_count, partition
from ctr_telemetry.monitoring.filters import ContainerFilter
from ctr_telemetry.monitoring.rates import calculate_cpu_percent, calculate_rate
from ctr_telemetry.monitoring.runtime import DockerRuntimeAdapter, connect_to_docker
from ctr_telemetry.monitoring.snapshot import ContainerCollector
from ctr_telemetry.utils.logging import LastErrorLogger

logger = logging.getLogger(__name__)


def format_container(
    ctr: Container,
    last: Container,
    num_cpus: int,
    last_run: float,
    now: float,
) -> ContainerStats:
    """Compute one container's rates against its previous sample."""
    return ContainerStats(
        type=ctr.runtime_type,
        id=ctr.id,
        name=ctr.name,
        image=ctr.image,
        cpu_limit=ctr.cpu_limit,
        memory_limit=ctr.mem_limit,
        user_pct=calculate_cpu_percent(ctr.cpu.user, last.cpu.user, num_cpus, last_run, now),
        system_pct=calculate_cpu_percent(ctr.cpu.system, last.cpu.system, num_cpus, last_run, now),
        total_pct=calculate_cpu_percent(ctr.cpu.total, last.cpu.total, num_cpus, last_run, now),
        mem_rss=ctr.memory.rss,
        mem_cache=ctr.memory.cache,
        rbps=calculate_rate(ctr.io.read_bytes, last.io.read_bytes, last_run, now),
        wbps=calculate_rate(ctr.io.write_bytes, last.io.write_bytes, last_run, now),
        net_rcvd_ps=calculate_rate(ctr.network.packets_rcvd, last.network.packets_rcvd, last_run, now),
        net_sent_ps=calculate_rate(ctr.network.packets_sent, last.network.packets_sent, last_run, now),
        net_rcvd_bps=calculate_rate(ctr.network.bytes_rcvd, last.network.bytes_rcvd, last_run, now),
        net_sent_bps=calculate_rate(ctr.network.bytes_sent, last.network.bytes_sent, last_run, now),
        created=ctr.created,
        started_at=ctr.started_at,
        state=ContainerState.parse(ctr.state),
        health=ContainerHealth.parse(ctr.health),
        pids=list(ctr.pids),
    )


def format_containers(
    containers: Sequence[Container],
    last_containers: Sequence[Container],
    num_cpus: int,
    last_run: float,
    now: float,
) -> list[ContainerStats]:
    """Compute rates for every container, in input order.

    Containers without a previous sample are compared against a zero-valued
    container.
    """
    last_by_id = {c.id: c for c in last_containers}
    return [
        format_container(ctr, last_by_id.get(ctr.id) or null_container(), num_cpus, last_run, now)
        for ctr in containers
    ]


class ContainerCheck:
    """Stateful container check run once per collection interval.

    Example:
        ```python
        check = ContainerCheck(config, collector, collect_system_info(config.hostname))
        while True:
            for group in check.run():
                send(group)
            time.sleep(config.check_interval_seconds)
        ```
    """

    name = "container"
    endpoint = "/api/v1/container"

    def __init__(
        self,
        config: TelemetryConfig,
        collector: ContainerCollector,
        system_info: SystemInfo,
        ecs_lookup: Callable[[], dict[str, Any] | None] = ecs_metadata,
        kube_lookup: Callable[[], dict[str, Any] | None] = kubernetes_metadata,
        cpu_times: Callable[[], Any] = psutil.cpu_times,
        num_cpus: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._collector = collector
        self._system_info = system_info
        self._ecs_lookup = ecs_lookup
        self._kube_lookup = kube_lookup
        self._cpu_times = cpu_times
        self._num_cpus = num_cpus or psutil.cpu_count(logical=True) or 1
        self._clock = clock
        self._errors = LastErrorLogger(logger)

        self.last_containers: list[Container] | None = None
        self.last_cpu_times: Any = None
        self.last_run: float = 0.0

    def all_containers(self) -> list[Container]:
        """Collect containers, logging a failure only when its text changes.

        Raises:
            CollectionError: If containers cannot be collected
        """
        try:
            return self._collector.containers()
        except CollectionError as e:
            self._errors.log("Unable to collect docker stats", e)
            raise

    def run(self, group_id: int = 0) -> list[ContainerGroup]:
        """Run one collection cycle.

        Args:
            group_id: Identifier shared by every group of this cycle

        Returns:
            Exactly ``group_count`` groups, or an empty list on the first run

        Raises:
            CollectionError: If system CPU times, processes or containers
                cannot be read
        """
        start = time.monotonic()
        try:
            cpu_times = self._cpu_times()
        except (psutil.Error, OSError) as e:
            error = CollectionError(f"could not read system CPU times: {e}")
            self._errors.log("Unable to collect docker stats", error)
            raise error from e
        containers = self.all_containers()
        now = self._clock()

        # End early on the first run, there is nothing to compare against
        if self.last_containers is None:
            self._remember(containers, cpu_times, now)
            return []

        ecs_meta = self._ecs_lookup()
        kube_meta = self._kube_lookup()

        groups = group_count(len(containers), self._config.max_per_group)
        stats = format_containers(
            containers, self.last_containers, self._num_cpus, self.last_run, now
        )
        messages = [
            ContainerGroup(
                host_name=self._config.hostname,
                info=self._system_info,
                containers=chunk,
                group_id=group_id,
                group_index=i,
                group_size=groups,
                kubernetes=kube_meta,
                ecs=ecs_meta,
            )
            for i, chunk in enumerate(partition(stats, groups))
        ]

        self._remember(containers, cpu_times, now)
        logger.info(
            f"Collected {len(containers)} containers in {time.monotonic() - start:.3f}s "
            f"({groups} groups)"
        )
        return messages

    def _remember(self, containers: list[Container], cpu_times: Any, now: float) -> None:
        self.last_containers = containers
        self.last_cpu_times = cpu_times
        self.last_run = now


def create_container_check(config: TelemetryConfig, client: Any = None) -> ContainerCheck:
    """Wire a ContainerCheck from configuration.

    Args:
        config: Collector configuration
        client: Docker API client (connects to the local daemon if omitted)

    Raises:
        FilterConfigError: If a whitelist/blacklist regex does not compile
        RuntimeUnavailableError: If Docker is not reachable
    """
    container_filter = ContainerFilter.from_lists(config.whitelist, config.blacklist)
    if client is None:
        client = connect_to_docker(config.docker_socket_path)
    adapter = DockerRuntimeAdapter(
        client,
        container_filter,
        collect_network=config.collect_network,
        host_proc=config.host_proc,
        invalidation_interval=config.invalidation_interval_seconds,
    )
    collector = ContainerCollector(
        adapter,
        CgroupV2Reader(config.cgroup_root, config.host_proc),
        cache_duration=config.cache_duration_seconds,
        host_proc=config.host_proc,
    )
    return ContainerCheck(config, collector, collect_system_info(config.hostname))
