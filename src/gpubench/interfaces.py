"""Collaborator contracts consumed by the harness.

Renderers, scenes and the GPU timing surfaces they expose are supplied by
the embedding application. Only the members listed here are used; optional
members are looked up with getattr and may be absent.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Protocol, Union


class RenderCounters(Protocol):
    """Per-frame counters a renderer exposes."""

    @property
    def calls(self) -> int:
        ...

    @property
    def triangles(self) -> int:
        ...


class Renderer(Protocol):
    """A rendering backend bound to the benchmark canvas.

    Optional members:
        counters: RenderCounters for the last rendered frame
        is_query_backend: True when timing_context is a QueryTimingContext
        is_timestamp_backend: True when timing_context is a TimestampTimingContext
        timing_context: GPU timing surface used to build the GpuTimer
    """

    def render(self, scene: Any, camera: Any) -> None:
        """Issue one frame's GPU commands."""
        ...

    def set_size(self, width: int, height: int) -> None:
        ...

    def dispose(self) -> None:
        ...


class Scene(Protocol):
    """A benchmark scene.

    Optional members:
        camera: Passed to Renderer.render (None when absent)
        animate(time_ms): Called once before every render
        dispose(): Releases the scene's GPU resources
    """


RendererFactory = Callable[[str, Any], Union[Renderer, Awaitable[Renderer]]]
SceneFactory = Callable[[str, Renderer], Any]


class QueryTimingContext(Protocol):
    """Explicit timer-query objects, polled for availability.

    Results are reported in nanoseconds. is_disjoint reports a driver
    interruption that invalidates in-flight queries.
    """

    @property
    def has_timer_query(self) -> bool:
        ...

    def create_query(self) -> Any:
        ...

    def begin_query(self, query: Any) -> None:
        ...

    def end_query(self) -> None:
        ...

    def is_query_available(self, query: Any) -> bool:
        ...

    def is_disjoint(self) -> bool:
        ...

    def get_query_result(self, query: Any) -> int:
        ...

    def delete_query(self, query: Any) -> None:
        ...


class BufferUsage(Enum):
    """Buffer roles used by the timestamp timer."""
    QUERY_RESOLVE = "query_resolve"
    MAP_READ = "map_read"


class TimestampWrites(NamedTuple):
    """Where a render pass writes its begin/end timestamps."""
    query_set: Any
    beginning_index: int = 0
    end_index: int = 1


class TimestampTimingContext(Protocol):
    """GPU timestamp writes resolved into a host-mappable buffer.

    Query sets and buffers returned here expose destroy(). Timestamps are
    nanosecond counters stored as little-endian unsigned 64-bit ints.
    """

    @property
    def has_timestamp_query(self) -> bool:
        ...

    def create_query_set(self, count: int) -> Any:
        ...

    def create_buffer(self, size: int, usage: BufferUsage) -> Any:
        ...

    def set_timestamp_writes(self, writes: Optional[TimestampWrites]) -> None:
        """Attach (or clear) timestamp writes for subsequent render passes."""
        ...

    def resolve_query_set(self, query_set: Any, resolve_buffer: Any, result_buffer: Any) -> None:
        """Resolve the query set and copy it into the mappable result buffer."""
        ...

    async def map_read(self, buffer: Any) -> bytes:
        """Map the buffer for reading and return a copy of its contents."""
        ...


class FrameClock(Protocol):
    """Frame pacing and time source for the orchestrator."""

    def now(self) -> float:
        """Monotonic time in milliseconds."""
        ...

    def wall_time_ms(self) -> int:
        """Milliseconds since the epoch, never decreasing."""
        ...

    async def next_frame(self) -> float:
        """Wait for the next display refresh and return now()."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...
