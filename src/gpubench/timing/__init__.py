"""GPU pass timing.

A renderer declares which timing surface it offers; create_gpu_timer()
picks the matching strategy once, when the renderer is acquired:

- Polling query objects (PollingQueryTimer)
- Timestamp writes resolved into a mapped buffer (TimestampResolveTimer)
- Nothing usable (NullGpuTimer, every poll() returns None)
"""

import logging
from typing import Any, Callable, Optional

from .base import GpuTimer, NullGpuTimer, TimerKind
from .query_timer import DEFAULT_SETTLE_DELAY_MS, PollingQueryTimer
from .timestamp_timer import DEFAULT_MAP_TIMEOUT, TimestampResolveTimer, WindowState

logger = logging.getLogger(__name__)


def select_timer_kind(renderer: Any) -> TimerKind:
    """Classify a renderer's timing surface from its backend flags."""
    context = getattr(renderer, "timing_context", None)
    if context is None:
        return TimerKind.UNSUPPORTED

    if getattr(renderer, "is_query_backend", False):
        if getattr(context, "has_timer_query", False):
            return TimerKind.POLLING
    elif getattr(renderer, "is_timestamp_backend", False):
        if getattr(context, "has_timestamp_query", False):
            return TimerKind.TIMESTAMP_RESOLVE

    return TimerKind.UNSUPPORTED


def create_gpu_timer(
    renderer: Any,
    clock: Optional[Callable[[], float]] = None,
    map_timeout: float = DEFAULT_MAP_TIMEOUT,
) -> GpuTimer:
    """Build the GpuTimer variant matching a renderer.

    Args:
        renderer: Acquired renderer
        clock: Millisecond clock for polling-query settle checks
        map_timeout: Readback deadline for the timestamp strategy

    Returns:
        A timer; NullGpuTimer when the backend cannot time GPU work
    """
    kind = select_timer_kind(renderer)

    if kind is TimerKind.POLLING:
        return PollingQueryTimer(renderer.timing_context, clock=clock)
    if kind is TimerKind.TIMESTAMP_RESOLVE:
        return TimestampResolveTimer(renderer.timing_context, map_timeout=map_timeout)

    logger.info(f"GPU timing unavailable for {type(renderer).__name__}; gpu_ms will be null")
    return NullGpuTimer()


__all__ = [
    "GpuTimer",
    "NullGpuTimer",
    "TimerKind",
    "PollingQueryTimer",
    "TimestampResolveTimer",
    "WindowState",
    "DEFAULT_SETTLE_DELAY_MS",
    "DEFAULT_MAP_TIMEOUT",
    "select_timer_kind",
    "create_gpu_timer",
]
