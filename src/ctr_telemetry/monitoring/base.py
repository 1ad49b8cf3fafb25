"""Container data model shared by the collector components.

A cycle's view of a container is split in two value types:

- ``CorrelatedBase``: identity, lifecycle, static limits and cgroup linkage.
  Built once per cache window and never mutated.
- ``LiveSample``: point-in-time counters re-read on every call.

``Container`` combines both for one cycle. Callers keep the previous cycle's
containers as the baseline for rate calculation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ctr_telemetry.monitoring.cgroups import ContainerCgroup


@dataclass
class CgroupTimesStat:
    """Cumulative CPU time in clock ticks (100 per second)."""

    user: int = 0
    system: int = 0

    @property
    def total(self) -> int:
        return self.user + self.system


@dataclass
class CgroupMemStat:
    """Memory usage in bytes."""

    rss: int = 0  # Anonymous memory
    cache: int = 0  # Page cache file bytes
    swap: int = 0
    usage: int = 0  # memory.current


@dataclass
class CgroupIOStat:
    """Cumulative block I/O counters aggregated across devices."""

    read_bytes: int = 0
    write_bytes: int = 0
    read_ops: int = 0
    write_ops: int = 0


class NetworkStatus(str, Enum):
    """Whether network counters were actually read.

    Distinguishes "zero because idle" from "zero because unreadable".
    """

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


@dataclass
class NetworkStat:
    """Cumulative network counters summed over a container's matched interfaces."""

    bytes_sent: int = 0
    bytes_rcvd: int = 0
    packets_sent: int = 0
    packets_rcvd: int = 0
    status: NetworkStatus = NetworkStatus.UNAVAILABLE


@dataclass(frozen=True)
class CorrelatedBase:
    """Identity and static data for one container.

    Produced by the runtime adapter; the correlation step attaches limits and
    the cgroup handle with ``dataclasses.replace``.
    """

    id: str
    name: str
    image: str
    image_id: str = ""
    runtime_type: str = ""
    created: int = 0
    state: str = ""
    health: str = ""
    cpu_limit: float = 0.0
    mem_limit: int = 0
    cgroup: ContainerCgroup | None = field(default=None, compare=False, repr=False)


@dataclass
class LiveSample:
    """Counters read for one container during one call."""

    cpu: CgroupTimesStat = field(default_factory=CgroupTimesStat)
    memory: CgroupMemStat = field(default_factory=CgroupMemStat)
    io: CgroupIOStat = field(default_factory=CgroupIOStat)
    network: NetworkStat = field(default_factory=NetworkStat)
    started_at: int = 0
    pids: list[int] = field(default_factory=list)


@dataclass
class Container:
    """One observed container at one instant."""

    id: str = ""
    name: str = ""
    image: str = ""
    image_id: str = ""
    runtime_type: str = ""
    created: int = 0
    started_at: int = 0
    state: str = ""
    health: str = ""
    cpu_limit: float = 0.0
    mem_limit: int = 0
    cpu: CgroupTimesStat = field(default_factory=CgroupTimesStat)
    memory: CgroupMemStat = field(default_factory=CgroupMemStat)
    io: CgroupIOStat = field(default_factory=CgroupIOStat)
    network: NetworkStat = field(default_factory=NetworkStat)
    pids: list[int] = field(default_factory=list)

    @classmethod
    def from_parts(cls, base: CorrelatedBase, sample: LiveSample) -> Container:
        """Combine a cached base with a freshly read sample."""
        return cls(
            id=base.id,
            name=base.name,
            image=base.image,
            image_id=base.image_id,
            runtime_type=base.runtime_type,
            created=base.created,
            started_at=sample.started_at,
            state=base.state,
            health=base.health,
            cpu_limit=base.cpu_limit,
            mem_limit=base.mem_limit,
            cpu=sample.cpu,
            memory=sample.memory,
            io=sample.io,
            network=sample.network,
            pids=list(sample.pids),
        )


def null_container() -> Container:
    """Zero-valued container used when no previous sample exists for an id.

    Every nested counter struct is present so rate calculations never see None.
    """
    return Container()
