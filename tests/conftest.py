"""Shared pytest fixtures for gpubench tests.

The fakes here stand in for a real rendering stack: a virtual frame clock
so orchestrator runs complete instantly, a renderer/scene pair that records
what the harness does to them, and in-memory timing contexts for both GPU
timer strategies.
"""
import asyncio
import logging
import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest

from gpubench.config import BenchmarkConfig
from gpubench.exceptions import BackendUnavailableError
from gpubench.interfaces import BufferUsage, TimestampWrites
from gpubench.utils.logging import ROOT_LOGGER_NAME


# ============================================================================
# Clock
# ============================================================================

class VirtualFrameClock:
    """Deterministic FrameClock; every next_frame() advances one interval."""

    def __init__(self, frame_interval_ms: float = 1000.0 / 60.0, epoch_ms: int = 1_700_000_000_000):
        self.frame_interval_ms = frame_interval_ms
        self.epoch_ms = epoch_ms
        self.frames = 0
        self.sleeps: List[float] = []
        self._now = 0.0

    def now(self) -> float:
        return self._now

    def wall_time_ms(self) -> int:
        return int(self.epoch_ms + self._now)

    def advance(self, ms: float) -> None:
        self._now += ms

    async def next_frame(self) -> float:
        self._now += self.frame_interval_ms
        self.frames += 1
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += seconds * 1000.0


# ============================================================================
# Renderer and scene
# ============================================================================

@dataclass
class FakeCounters:
    calls: int = 12
    triangles: int = 48_000


class FakeRenderer:
    """Renderer double that records calls into a shared event log."""

    def __init__(
        self,
        backend_id: str,
        events: Optional[List[tuple]] = None,
        timing_context: Any = None,
        is_query_backend: bool = False,
        is_timestamp_backend: bool = False,
        counters: Optional[FakeCounters] = None,
        fail_on_render: Optional[str] = None,
    ):
        self.backend_id = backend_id
        self.events = events if events is not None else []
        self.timing_context = timing_context
        self.is_query_backend = is_query_backend
        self.is_timestamp_backend = is_timestamp_backend
        self.counters = counters if counters is not None else FakeCounters()
        self.fail_on_render = fail_on_render
        self.sizes: List[tuple] = []
        self.render_calls = 0
        self.cameras: List[Any] = []
        self.dispose_count = 0

    def set_size(self, width: int, height: int) -> None:
        self.sizes.append((width, height))
        self.events.append(("set_size", self.backend_id, (width, height)))

    def render(self, scene: Any, camera: Any) -> None:
        if self.fail_on_render is not None and getattr(scene, "scene_id", None) == self.fail_on_render:
            raise RuntimeError("device lost")
        self.render_calls += 1
        self.cameras.append(camera)

    def dispose(self) -> None:
        self.dispose_count += 1
        self.events.append(("dispose_renderer", self.backend_id))


class FakeScene:
    def __init__(self, scene_id: str, events: Optional[List[tuple]] = None):
        self.scene_id = scene_id
        self.events = events if events is not None else []
        self.camera = f"camera:{scene_id}"
        self.animate_times: List[float] = []
        self.dispose_count = 0

    def animate(self, time_ms: float) -> None:
        self.animate_times.append(time_ms)

    def dispose(self) -> None:
        self.dispose_count += 1
        self.events.append(("dispose_scene", self.scene_id))


class RendererFactory:
    """Callable renderer factory with per-backend failure injection."""

    def __init__(self, events: List[tuple], unavailable=(), broken=(), **renderer_kwargs):
        self.events = events
        self.unavailable = set(unavailable)
        self.broken = set(broken)
        self.renderer_kwargs = renderer_kwargs
        self.created: Dict[str, FakeRenderer] = {}
        self.canvases: List[Any] = []

    def __call__(self, backend_id: str, canvas: Any) -> FakeRenderer:
        self.canvases.append(canvas)
        self.events.append(("acquire", backend_id))
        if backend_id in self.unavailable:
            raise BackendUnavailableError("No adapter found", backend=backend_id)
        if backend_id in self.broken:
            raise RuntimeError("context creation failed")
        renderer = FakeRenderer(backend_id, self.events, **self.renderer_kwargs)
        self.created[backend_id] = renderer
        return renderer


class SceneFactory:
    def __init__(self, events: List[tuple], broken=()):
        self.events = events
        self.broken = set(broken)
        self.created: List[FakeScene] = []

    def __call__(self, scene_id: str, renderer: Any) -> FakeScene:
        if scene_id in self.broken:
            raise ValueError(f"unknown scene {scene_id}")
        scene = FakeScene(scene_id, self.events)
        self.created.append(scene)
        self.events.append(("build_scene", scene_id))
        return scene


# ============================================================================
# Timing contexts
# ============================================================================

class FakeQueryContext:
    """Timer-query surface with switchable availability and disjoint state."""

    def __init__(self, has_timer_query: bool = True, result_ns: int = 1_500_000):
        self.has_timer_query = has_timer_query
        self.result_ns = result_ns
        self.results: Dict[int, int] = {}
        self.available = True
        self.disjoint = False
        self.created: List[int] = []
        self.deleted: List[int] = []
        self.begun: List[int] = []
        self.ended = 0

    def create_query(self) -> int:
        handle = len(self.created)
        self.created.append(handle)
        return handle

    def begin_query(self, query: int) -> None:
        self.begun.append(query)

    def end_query(self) -> None:
        self.ended += 1

    def is_query_available(self, query: int) -> bool:
        return self.available

    def is_disjoint(self) -> bool:
        return self.disjoint

    def get_query_result(self, query: int) -> int:
        return self.results.get(query, self.result_ns)

    def delete_query(self, query: int) -> None:
        self.deleted.append(query)


class FakeGpuResource:
    def __init__(self, kind: str, size: int = 0, usage: Optional[BufferUsage] = None):
        self.kind = kind
        self.size = size
        self.usage = usage
        self.destroyed = False

    def destroy(self) -> None:
        self.destroyed = True


class FakeTimestampContext:
    """Timestamp-query surface whose readback can succeed, fail or stall."""

    def __init__(self, has_timestamp_query: bool = True, start_ns: int = 1_000, end_ns: int = 2_501_000):
        self.has_timestamp_query = has_timestamp_query
        self.map_data = struct.pack("<QQ", start_ns, end_ns)
        self.map_error: Optional[Exception] = None
        self.map_delay = 0.0
        self.resources: List[FakeGpuResource] = []
        self.writes: List[Optional[TimestampWrites]] = []
        self.resolved: List[tuple] = []
        self.maps = 0

    def create_query_set(self, count: int) -> FakeGpuResource:
        resource = FakeGpuResource("query_set", size=count)
        self.resources.append(resource)
        return resource

    def create_buffer(self, size: int, usage: BufferUsage) -> FakeGpuResource:
        resource = FakeGpuResource("buffer", size=size, usage=usage)
        self.resources.append(resource)
        return resource

    def set_timestamp_writes(self, writes: Optional[TimestampWrites]) -> None:
        self.writes.append(writes)

    def resolve_query_set(self, query_set, resolve_buffer, result_buffer) -> None:
        self.resolved.append((query_set, resolve_buffer, result_buffer))

    async def map_read(self, buffer) -> bytes:
        self.maps += 1
        if self.map_delay:
            await asyncio.sleep(self.map_delay)
        if self.map_error is not None:
            raise self.map_error
        return self.map_data


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def events() -> List[tuple]:
    return []


@pytest.fixture
def clock() -> VirtualFrameClock:
    """50 Hz virtual clock; 20 ms frames keep float arithmetic exact."""
    return VirtualFrameClock(frame_interval_ms=20.0)


@pytest.fixture
def short_config() -> BenchmarkConfig:
    return BenchmarkConfig(
        renderers=["webgl", "webgpu"],
        scenes=["storm", "city"],
        duration=2.0,
        warmup_time=0.5,
        resolutions=[(1280, 720)],
    )


@pytest.fixture
def query_context() -> FakeQueryContext:
    return FakeQueryContext()


@pytest.fixture
def timestamp_context() -> FakeTimestampContext:
    return FakeTimestampContext()


@pytest.fixture
def reset_logging():
    """Undo handler and level changes made by configure_logging()."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True
    for name in ("timing", "orchestrator", "cli"):
        logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}").setLevel(logging.NOTSET)
