"""Timer built on explicit GPU timer-query objects.

Several queries can be in flight at once: each frame opens one, and
poll() collects whichever have matured since the last call. Completed
query handles go back to a pool for reuse; handles invalidated by a
disjoint event are deleted instead.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from ..interfaces import QueryTimingContext
from .base import NANOSECONDS_PER_MILLISECOND, GpuTimer, TimerKind

logger = logging.getLogger(__name__)

# Results are not read earlier than this after end(), in ms
DEFAULT_SETTLE_DELAY_MS = 2.0


def _perf_counter_ms() -> float:
    return time.perf_counter() * 1000.0


class PollingQueryTimer(GpuTimer):
    """Polling-query GPU timer with a reusable handle pool.

    Example:
        >>> timer = PollingQueryTimer(context)
        >>> timer.begin()
        >>> renderer.render(scene, camera)
        >>> timer.end()
        >>> gpu_ms = await timer.poll()  # None until a query matures
    """

    def __init__(
        self,
        context: QueryTimingContext,
        settle_delay_ms: float = DEFAULT_SETTLE_DELAY_MS,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the timer.

        Args:
            context: Timer-query surface of the renderer
            settle_delay_ms: Minimum age of a query before it is read
            clock: Millisecond clock used for query age, perf_counter by default
        """
        self._context = context
        self._settle_delay_ms = settle_delay_ms
        self._clock = clock or _perf_counter_ms
        self._enabled = bool(getattr(context, "has_timer_query", False))
        self._pool: List[Any] = []
        self._pending: Dict[Any, float] = {}
        self._active: Optional[Any] = None
        self._destroyed = False

        if not self._enabled:
            logger.warning("GPU timing not available: timer queries not supported")

    @property
    def kind(self) -> TimerKind:
        return TimerKind.POLLING if self._enabled else TimerKind.UNSUPPORTED

    @property
    def pool_size(self) -> int:
        """Idle handles available for reuse."""
        return len(self._pool)

    @property
    def pending_count(self) -> int:
        """Ended queries whose results have not been collected."""
        return len(self._pending)

    def begin(self) -> None:
        if not self._enabled or self._destroyed or self._active is not None:
            return

        query = self._pool.pop() if self._pool else self._context.create_query()
        self._context.begin_query(query)
        self._active = query

    def end(self) -> None:
        if not self._enabled or self._active is None:
            return

        self._context.end_query()
        self._pending[self._active] = self._clock()
        self._active = None

    async def poll(self) -> Optional[float]:
        """Collect matured queries.

        Returns:
            Mean duration in ms of the queries that completed during this
            call, or None if none did.
        """
        if not self._enabled or self._destroyed or not self._pending:
            return None

        now = self._clock()
        total_ms = 0.0
        completed = 0

        for query, issued_at in list(self._pending.items()):
            if now - issued_at < self._settle_delay_ms:
                continue

            available = self._context.is_query_available(query)
            disjoint = self._context.is_disjoint()

            if disjoint:
                # Interval is invalid; the handle is not reused
                self._context.delete_query(query)
                del self._pending[query]
                logger.debug("Discarded GPU timer query after disjoint event")
                continue

            if available:
                elapsed_ns = self._context.get_query_result(query)
                total_ms += elapsed_ns / NANOSECONDS_PER_MILLISECOND
                completed += 1
                del self._pending[query]
                self._pool.append(query)

        if completed == 0:
            return None
        return total_ms / completed

    def discard_pending(self) -> None:
        """Forget uncollected queries.

        Handles whose results are already available go back to the pool;
        the rest are deleted.
        """
        if not self._enabled or self._destroyed:
            return

        if self._active is not None:
            self._context.end_query()
            self._context.delete_query(self._active)
            self._active = None

        disjoint = bool(self._pending) and self._context.is_disjoint()
        for query in list(self._pending):
            if not disjoint and self._context.is_query_available(query):
                self._pool.append(query)
            else:
                self._context.delete_query(query)
        self._pending.clear()

    def destroy(self) -> None:
        handles = list(self._pending) + self._pool
        if self._active is not None:
            handles.append(self._active)
        for query in handles:
            self._context.delete_query(query)

        self._pending.clear()
        self._pool.clear()
        self._active = None
        self._destroyed = True
