"""Shared utilities for gpubench."""

from .logging import (
    GpuBenchLogger,
    JSONFormatter,
    LogConfig,
    TextFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "GpuBenchLogger",
    "JSONFormatter",
    "LogConfig",
    "TextFormatter",
    "configure_logging",
    "get_logger",
]
