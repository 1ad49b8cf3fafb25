"""Results module - Local storage of transport groups."""

from __future__ import annotations

from ctr_telemetry.results.storage import GroupStorage, load_groups, store_groups

__all__ = ["GroupStorage", "store_groups", "load_groups"]
