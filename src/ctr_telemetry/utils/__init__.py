"""Utils module - Shared utilities."""

from __future__ import annotations

from ctr_telemetry.utils.logging import LastErrorLogger, get_logger, setup_logging

__all__ = ["LastErrorLogger", "setup_logging", "get_logger"]
