"""Partitioning of a container list into a fixed number of transport groups."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def group_count(item_count: int, per_group_limit: int) -> int:
    """Number of groups needed for ``item_count`` items, at least 1."""
    if per_group_limit < 1:
        raise ValueError(f"per_group_limit must be >= 1, got {per_group_limit}")
    return max(1, math.ceil(item_count / per_group_limit))


def partition(items: Sequence[T], groups: int) -> list[list[T]]:
    """Split ``items`` into exactly ``groups`` ordered partitions.

    Partitions are filled in input order up to ``len(items) // groups + 1``
    items each; the last non-empty partition holds the remainder and any
    trailing partitions are empty.

    Raises:
        ValueError: If ``groups`` is less than 1
    """
    if groups < 1:
        raise ValueError(f"groups must be >= 1, got {groups}")

    per_group = len(items) // groups + 1
    chunked: list[list[T]] = [[] for _ in range(groups)]
    index = 0
    for item in items:
        chunked[index].append(item)
        if len(chunked[index]) == per_group:
            index += 1
    return chunked
