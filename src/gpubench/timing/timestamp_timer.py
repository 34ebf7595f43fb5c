"""Timer built on GPU timestamp writes resolved into a mappable buffer.

One measurement window is open at a time. begin() allocates a two-slot
query set with its resolve and readback buffers and registers them as the
timestamp writes of the next render pass; poll() resolves the set, maps
the readback buffer and frees everything again.

Window states:
    IDLE -> BEGAN -> ENDED -> POLLING -> IDLE
"""

import asyncio
import logging
import struct
from enum import Enum
from typing import Any, Optional

from ..exceptions import BufferMapError
from ..interfaces import BufferUsage, TimestampTimingContext, TimestampWrites
from .base import NANOSECONDS_PER_MILLISECOND, GpuTimer, TimerKind

logger = logging.getLogger(__name__)

TIMESTAMP_COUNT = 2
TIMESTAMP_BYTES = 8
RESULT_BUFFER_SIZE = TIMESTAMP_COUNT * TIMESTAMP_BYTES

DEFAULT_MAP_TIMEOUT = 0.25


class WindowState(Enum):
    IDLE = "idle"
    BEGAN = "began"
    ENDED = "ended"
    POLLING = "polling"


class TimestampResolveTimer(GpuTimer):
    """Single-window timestamp GPU timer.

    A begin() while a window is already open is ignored, so calling
    begin()/end() every frame measures one frame per completed poll().
    """

    def __init__(
        self,
        context: TimestampTimingContext,
        map_timeout: float = DEFAULT_MAP_TIMEOUT,
    ):
        """Initialize the timer.

        Args:
            context: Timestamp-query surface of the renderer
            map_timeout: Seconds to wait for the readback map before dropping the sample
        """
        self._context = context
        self._map_timeout = map_timeout
        self._enabled = bool(getattr(context, "has_timestamp_query", False))
        self._state = WindowState.IDLE
        self._query_set: Optional[Any] = None
        self._resolve_buffer: Optional[Any] = None
        self._result_buffer: Optional[Any] = None
        self._destroyed = False

        if not self._enabled:
            logger.warning("GPU timing not available: timestamp queries not supported")

    @property
    def kind(self) -> TimerKind:
        return TimerKind.TIMESTAMP_RESOLVE if self._enabled else TimerKind.UNSUPPORTED

    @property
    def state(self) -> WindowState:
        return self._state

    def begin(self) -> None:
        if not self._enabled or self._destroyed or self._state is not WindowState.IDLE:
            return

        self._query_set = self._context.create_query_set(TIMESTAMP_COUNT)
        self._resolve_buffer = self._context.create_buffer(RESULT_BUFFER_SIZE, BufferUsage.QUERY_RESOLVE)
        self._result_buffer = self._context.create_buffer(RESULT_BUFFER_SIZE, BufferUsage.MAP_READ)
        self._context.set_timestamp_writes(TimestampWrites(self._query_set, 0, 1))
        self._state = WindowState.BEGAN

    def end(self) -> None:
        if self._state is not WindowState.BEGAN:
            return

        self._context.set_timestamp_writes(None)
        self._state = WindowState.ENDED

    async def poll(self) -> Optional[float]:
        """Read back the open window.

        Suspends while the readback buffer is mapped. A rejected or
        timed-out map drops the sample and returns None.
        """
        if self._state is not WindowState.ENDED:
            return None

        self._state = WindowState.POLLING
        try:
            self._context.resolve_query_set(self._query_set, self._resolve_buffer, self._result_buffer)
            data = await asyncio.wait_for(
                self._context.map_read(self._result_buffer),
                timeout=self._map_timeout,
            )
        except BufferMapError as e:
            logger.debug(f"Dropped GPU timestamp sample: {e}")
            return None
        except asyncio.TimeoutError:
            logger.debug(f"Dropped GPU timestamp sample: map timed out after {self._map_timeout}s")
            return None
        finally:
            self._release()

        if len(data) < RESULT_BUFFER_SIZE:
            logger.debug(f"Dropped GPU timestamp sample: readback returned {len(data)} bytes")
            return None

        start, end = struct.unpack_from("<QQ", data)
        if end <= start:
            logger.debug(f"Dropped GPU timestamp sample: non-increasing timestamps {start} -> {end}")
            return None
        return (end - start) / NANOSECONDS_PER_MILLISECOND

    def discard_pending(self) -> None:
        """Close and free the open window without reading it."""
        if self._state is WindowState.BEGAN:
            self._context.set_timestamp_writes(None)
        if self._state is not WindowState.IDLE:
            self._release()

    def destroy(self) -> None:
        self.discard_pending()
        self._destroyed = True

    def _release(self) -> None:
        for resource in (self._query_set, self._resolve_buffer, self._result_buffer):
            if resource is not None:
                resource.destroy()
        self._query_set = None
        self._resolve_buffer = None
        self._result_buffer = None
        self._state = WindowState.IDLE
