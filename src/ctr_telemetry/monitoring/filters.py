"""Whitelist/blacklist filtering of discovered containers.

Patterns have the form ``"field:regex"`` where field is ``image`` or ``name``.
A container matching any blacklist pattern is excluded unless it also matches
a whitelist pattern.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Protocol

from ctr_telemetry.core.errors import FilterConfigError


class Filterable(Protocol):
    image: str
    name: str


def parse_filters(filters: list[str]) -> tuple[list[re.Pattern[str]], list[re.Pattern[str]]]:
    """Compile filter strings into image and name pattern lists.

    Strings without a known ``image:``/``name:`` prefix are ignored.

    Raises:
        FilterConfigError: If any expression does not compile
    """
    image_filters: list[re.Pattern[str]] = []
    name_filters: list[re.Pattern[str]] = []
    for pattern in filters:
        if pattern.startswith("image:"):
            target = image_filters
            expr = pattern[len("image:") :]
        elif pattern.startswith("name:"):
            target = name_filters
            expr = pattern[len("name:") :]
        else:
            continue
        try:
            target.append(re.compile(expr))
        except re.error as e:
            raise FilterConfigError(f"invalid regex '{expr}': {e}") from e
    return image_filters, name_filters


@dataclass
class ContainerFilter:
    """Precompiled include/exclude patterns over image and container name."""

    enabled: bool = False
    image_whitelist: list[re.Pattern[str]] = field(default_factory=list)
    name_whitelist: list[re.Pattern[str]] = field(default_factory=list)
    image_blacklist: list[re.Pattern[str]] = field(default_factory=list)
    name_blacklist: list[re.Pattern[str]] = field(default_factory=list)

    @classmethod
    def from_lists(cls, whitelist: list[str], blacklist: list[str]) -> ContainerFilter:
        """Build a filter from whitelist and blacklist pattern strings.

        Raises:
            FilterConfigError: If any expression does not compile
        """
        iwl, nwl = parse_filters(whitelist)
        ibl, nbl = parse_filters(blacklist)
        return cls(
            enabled=bool(whitelist) or bool(blacklist),
            image_whitelist=iwl,
            name_whitelist=nwl,
            image_blacklist=ibl,
            name_blacklist=nbl,
        )

    def is_excluded(self, container: Filterable) -> bool:
        """Return True if the container should be dropped from collection."""
        if not self.enabled:
            return False

        excluded = any(r.search(container.image) for r in self.image_blacklist) or any(
            r.search(container.name) for r in self.name_blacklist
        )

        # Any excluded container can be whitelisted back in
        if excluded and (
            any(r.search(container.image) for r in self.image_whitelist)
            or any(r.search(container.name) for r in self.name_whitelist)
        ):
            return False
        return excluded
