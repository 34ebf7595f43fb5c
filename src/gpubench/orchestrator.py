"""Benchmark matrix driver.

Runs every (renderer, scene, resolution) cell of a BenchmarkConfig one
after another on a single cooperative control flow. Backends are the
outer loop: each is acquired once, shared by all of its cells, then
disposed before the next backend starts.

Per cell:
    1. set the target resolution
    2. build the scene
    3. render warmup frames (not sampled)
    4. sample every Nth frame until the duration elapses
    5. dispose the scene, pause for the inter-cell delay
    6. summarize the samples into a TestResult

Failures are contained: a backend that cannot be acquired contributes no
results, and a cell whose collaborators raise is dropped on its own.
run() always returns a BenchmarkResults.
"""

import inspect
import math
import time
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from .aggregation import compute_summary
from .clock import RealtimeFrameClock
from .config import BenchmarkConfig, Resolution
from .exceptions import BackendUnavailableError, CellFailedError
from .interfaces import FrameClock, RendererFactory, SceneFactory
from .models import BenchmarkResults, Metric, TestResult
from .system import SystemProfiler, process_memory_mb
from .timing import GpuTimer, NullGpuTimer, create_gpu_timer
from .utils.logging import get_logger

logger = get_logger("orchestrator")

DEFAULT_SAMPLE_STRIDE = 10
DEFAULT_INTER_CELL_DELAY = 1.0

ProgressCallback = Callable[[float, str], None]
TimerFactory = Callable[[Any], GpuTimer]


class BenchmarkOrchestrator:
    """Drives the renderer x scene x resolution matrix.

    Example:
        >>> config = BenchmarkConfig(renderers=["webgl", "webgpu"], scenes=["storm"])
        >>> orchestrator = BenchmarkOrchestrator(config)
        >>> results = asyncio.run(orchestrator.run(make_renderer, make_scene, canvas))
        >>> for result in results.results:
        ...     print(result.label, result.summary.avg_fps)
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        sample_stride: int = DEFAULT_SAMPLE_STRIDE,
        inter_cell_delay: float = DEFAULT_INTER_CELL_DELAY,
        frame_clock: Optional[FrameClock] = None,
        memory_probe: Optional[Callable[[], int]] = None,
        timer_factory: Optional[TimerFactory] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Benchmark matrix to run
            sample_stride: Record a Metric every Nth frame after warmup
            inter_cell_delay: Seconds to pause after each cell
            frame_clock: Frame pacing and time source (60 Hz wall clock by default)
            memory_probe: Returns the vram_mb estimate for a sample
            timer_factory: Builds the GpuTimer for an acquired renderer
            on_progress: Called with (fraction, cell label) as each cell starts
        """
        if isinstance(sample_stride, bool) or not isinstance(sample_stride, int) or sample_stride < 1:
            raise ValueError("sample_stride must be a positive integer")
        if not math.isfinite(inter_cell_delay) or inter_cell_delay < 0:
            raise ValueError("inter_cell_delay must be a finite, non-negative number")

        self.config = config
        self.sample_stride = sample_stride
        self.inter_cell_delay = inter_cell_delay
        self.clock: FrameClock = frame_clock or RealtimeFrameClock()
        self.memory_probe = memory_probe or process_memory_mb
        self.timer_factory = timer_factory or self._default_timer_factory
        self.on_progress = on_progress
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the run at the next frame or cell boundary.

        The interrupted cell is discarded; completed cells are returned.
        """
        if not self._cancelled:
            logger.info("Benchmark cancellation requested")
        self._cancelled = True

    async def run(
        self,
        renderer_factory: RendererFactory,
        scene_factory: SceneFactory,
        canvas: Any,
    ) -> BenchmarkResults:
        """Run the whole matrix.

        Args:
            renderer_factory: (backend_id, canvas) -> renderer, may be a coroutine
            scene_factory: (scene_id, renderer) -> scene
            canvas: Render target handed to one backend at a time

        Returns:
            Results for every completed cell, in execution order
        """
        self._cancelled = False
        start_time = datetime.now()
        system_info = SystemProfiler.get_system_info()
        results: List[TestResult] = []

        total_cells = self.config.cell_count
        cells_per_backend = len(self.config.scenes) * len(self.config.resolutions)
        cell_index = 0

        logger.info(
            "Starting benchmark run",
            renderers=list(self.config.renderers),
            scenes=list(self.config.scenes),
            cells=total_cells,
        )
        run_started = time.perf_counter()

        for backend_id in self.config.renderers:
            if self._cancelled:
                break

            renderer = await self._acquire_renderer(renderer_factory, backend_id, canvas)
            if renderer is None:
                cell_index += cells_per_backend
                continue

            timer = self._create_timer(backend_id, renderer)
            logger.info(f"Acquired {backend_id} renderer", backend=backend_id, timer=timer.kind.value)

            try:
                for scene_id in self.config.scenes:
                    for resolution in self.config.resolutions:
                        if self._cancelled:
                            break

                        cell_index += 1
                        label = f"{backend_id} - {scene_id} - {resolution[0]}x{resolution[1]}"
                        if self.on_progress:
                            self.on_progress(cell_index / total_cells, label)

                        result = await self._run_cell(
                            renderer, timer, backend_id, scene_id, resolution, scene_factory
                        )
                        if result is not None:
                            results.append(result)
            finally:
                self._dispose_backend(backend_id, renderer, timer)

        end_time = datetime.now()
        if not results:
            logger.warning("Benchmark produced no results")

        logger.info(
            "Benchmark run finished",
            results=len(results),
            cancelled=self._cancelled,
            duration_seconds=round(time.perf_counter() - run_started, 2),
        )

        return BenchmarkResults(
            config=self.config,
            start_time=start_time,
            end_time=end_time,
            results=results,
            system_info=system_info,
        )

    async def _acquire_renderer(
        self,
        renderer_factory: RendererFactory,
        backend_id: str,
        canvas: Any,
    ) -> Optional[Any]:
        """Create a backend, returning None if it is unavailable."""
        try:
            renderer = renderer_factory(backend_id, canvas)
            if inspect.isawaitable(renderer):
                renderer = await renderer
        except BackendUnavailableError as e:
            logger.warning(f"Skipping {backend_id}: {e}", backend=backend_id)
            return None
        except Exception as e:
            logger.warning(
                f"Skipping {backend_id}: renderer creation failed: {e}",
                backend=backend_id,
                exc_info=True,
            )
            return None

        if renderer is None:
            logger.warning(f"Skipping {backend_id}: factory returned no renderer", backend=backend_id)
        return renderer

    async def _run_cell(
        self,
        renderer: Any,
        timer: GpuTimer,
        backend_id: str,
        scene_id: str,
        resolution: Resolution,
        scene_factory: SceneFactory,
    ) -> Optional[TestResult]:
        """Run one cell; None if it failed or was cancelled."""
        width, height = resolution
        scene = None
        metrics: Optional[List[Metric]] = None

        logger.debug("Starting cell", backend=backend_id, scene=scene_id, resolution=f"{width}x{height}")

        try:
            renderer.set_size(width, height)
            scene = scene_factory(scene_id, renderer)
            metrics = await self._sample_frames(renderer, timer, backend_id, scene_id, scene)
        except Exception as e:
            error = CellFailedError(
                "Benchmark cell failed",
                renderer=backend_id,
                scene=scene_id,
                resolution=resolution,
                cause=e,
            )
            logger.error(f"{error}: {e}", exc_info=True)
        finally:
            self._discard_timing(backend_id, timer)
            self._dispose_scene(scene)

        if metrics is None:
            return None

        await self.clock.sleep(self.inter_cell_delay)

        summary = compute_summary(metrics)
        logger.info(
            "Cell complete",
            backend=backend_id,
            scene=scene_id,
            resolution=f"{width}x{height}",
            samples=len(metrics),
            avg_fps=None if summary.is_empty else round(summary.avg_fps, 2),
        )
        cell_fields = {"backend": backend_id, "scene": scene_id, "resolution": f"{width}x{height}"}
        if not summary.is_empty:
            logger.metric("avg_fps", round(summary.avg_fps, 2), unit="fps", **cell_fields)
        if summary.avg_gpu_ms is not None:
            logger.metric("avg_gpu_ms", round(summary.avg_gpu_ms, 3), unit="ms", **cell_fields)

        return TestResult(
            renderer=backend_id,
            scene=scene_id,
            resolution=(width, height),
            metrics=tuple(metrics),
            summary=summary,
        )

    async def _sample_frames(
        self,
        renderer: Any,
        timer: GpuTimer,
        backend_id: str,
        scene_id: str,
        scene: Any,
    ) -> Optional[List[Metric]]:
        """Render the warmup and sampling windows of a cell.

        Returns:
            Sampled metrics, or None if cancelled mid-cell
        """
        warmup_ms = self.config.warmup_time * 1000.0
        duration_ms = self.config.duration * 1000.0
        camera = getattr(scene, "camera", None)
        animate = getattr(scene, "animate", None)

        metrics: List[Metric] = []
        frame_count = 0
        cell_start = self.clock.now()
        last_time = cell_start
        sampling_start: Optional[float] = None

        while True:
            if self._cancelled:
                return None

            current_time = await self.clock.next_frame()
            delta_ms = current_time - last_time

            if sampling_start is None:
                if current_time - cell_start > warmup_ms:
                    sampling_start = current_time
                    timer.discard_pending()
            else:
                if frame_count % self.sample_stride == 0 and delta_ms > 0:
                    metrics.append(await self._sample(renderer, timer, backend_id, scene_id, frame_count, delta_ms))

                if current_time - sampling_start > duration_ms:
                    return metrics

            if animate is not None:
                animate(current_time)

            if sampling_start is None:
                renderer.render(scene, camera)
            else:
                # Warmup frames are not timed on the GPU
                timer.begin()
                renderer.render(scene, camera)
                timer.end()

            frame_count += 1
            last_time = current_time

    async def _sample(
        self,
        renderer: Any,
        timer: GpuTimer,
        backend_id: str,
        scene_id: str,
        frame: int,
        delta_ms: float,
    ) -> Metric:
        gpu_ms = await timer.poll()
        draw_calls, triangles = self._read_counters(renderer)

        return Metric(
            frame=frame,
            timestamp=self.clock.wall_time_ms(),
            api=backend_id,
            scene=scene_id,
            fps=1000.0 / delta_ms,
            cpu_ms=delta_ms,
            gpu_ms=gpu_ms,
            vram_mb=int(self.memory_probe()),
            draw_calls=draw_calls,
            triangles=triangles,
        )

    @staticmethod
    def _read_counters(renderer: Any) -> Tuple[Optional[int], Optional[int]]:
        counters = getattr(renderer, "counters", None)
        if counters is None:
            return None, None
        return int(getattr(counters, "calls", 0) or 0), int(getattr(counters, "triangles", 0) or 0)

    def _default_timer_factory(self, renderer: Any) -> GpuTimer:
        return create_gpu_timer(renderer, clock=self.clock.now)

    def _create_timer(self, backend_id: str, renderer: Any) -> GpuTimer:
        try:
            return self.timer_factory(renderer)
        except Exception as e:
            logger.warning(
                f"GPU timing disabled for {backend_id}: timer setup failed: {e}",
                backend=backend_id,
            )
            return NullGpuTimer()

    @staticmethod
    def _discard_timing(backend_id: str, timer: GpuTimer) -> None:
        try:
            timer.discard_pending()
        except Exception as e:
            logger.error(f"Discarding GPU timer state failed for {backend_id}: {e}", exc_info=True)

    @staticmethod
    def _dispose_scene(scene: Any) -> None:
        dispose = getattr(scene, "dispose", None)
        if dispose is None:
            return
        try:
            dispose()
        except Exception as e:
            logger.error(f"Scene disposal failed: {e}", exc_info=True)

    @staticmethod
    def _dispose_backend(backend_id: str, renderer: Any, timer: GpuTimer) -> None:
        try:
            timer.destroy()
        except Exception as e:
            logger.error(f"GPU timer teardown failed for {backend_id}: {e}", exc_info=True)

        dispose = getattr(renderer, "dispose", None)
        if dispose is None:
            return
        try:
            dispose()
        except Exception as e:
            logger.error(f"Renderer disposal failed for {backend_id}: {e}", exc_info=True)
        else:
            logger.debug(f"Disposed {backend_id} renderer", backend=backend_id)
