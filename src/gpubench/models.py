"""Result data model for gpubench runs.

Metric, Summary and TestResult are immutable once created. A
BenchmarkResults value is assembled once at the end of a run and may be
read freely afterwards.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .config import BenchmarkConfig, Resolution


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    return None if value is None or math.isnan(value) else value


def _nan_if_none(value: Optional[float]) -> float:
    return float("nan") if value is None else float(value)


@dataclass(frozen=True)
class Metric:
    """One sampled frame.

    Attributes:
        frame: Frame index within the cell, counted from the first frame
        timestamp: Wall-clock time of the sample in ms since the epoch
        api: Backend id
        scene: Scene id
        fps: Instantaneous frame rate (1000 / frame delta)
        cpu_ms: Frame delta in milliseconds
        gpu_ms: GPU pass time, None when not measured
        vram_mb: Memory estimate in MB
        draw_calls: Renderer draw call counter, if exposed
        triangles: Renderer triangle counter, if exposed
    """
    frame: int
    timestamp: int
    api: str
    scene: str
    fps: float
    cpu_ms: float
    gpu_ms: Optional[float]
    vram_mb: int
    draw_calls: Optional[int] = None
    triangles: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "frame": self.frame,
            "timestamp": self.timestamp,
            "api": self.api,
            "scene": self.scene,
            "fps": self.fps,
            "cpu_ms": self.cpu_ms,
            "gpu_ms": self.gpu_ms,
            "vram_mb": self.vram_mb,
            "draw_calls": self.draw_calls,
            "triangles": self.triangles,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metric":
        return cls(
            frame=int(data["frame"]),
            timestamp=int(data["timestamp"]),
            api=data["api"],
            scene=data["scene"],
            fps=float(data["fps"]),
            cpu_ms=float(data["cpu_ms"]),
            gpu_ms=None if data.get("gpu_ms") is None else float(data["gpu_ms"]),
            vram_mb=int(data.get("vram_mb", 0)),
            draw_calls=data.get("draw_calls"),
            triangles=data.get("triangles"),
        )


@dataclass(frozen=True)
class Summary:
    """Statistics derived from a cell's metrics.

    An empty sample set produces NaN frame statistics and a None GPU
    average; see Summary.empty().
    """
    avg_fps: float
    min_fps: float
    max_fps: float
    avg_cpu_ms: float
    avg_gpu_ms: Optional[float]
    percentile95_fps: float
    percentile99_fps: float
    sample_count: int = 0

    @classmethod
    def empty(cls) -> "Summary":
        nan = float("nan")
        return cls(
            avg_fps=nan,
            min_fps=nan,
            max_fps=nan,
            avg_cpu_ms=nan,
            avg_gpu_ms=None,
            percentile95_fps=nan,
            percentile99_fps=nan,
            sample_count=0,
        )

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary; NaN fields become None."""
        return {
            "avg_fps": _finite_or_none(self.avg_fps),
            "min_fps": _finite_or_none(self.min_fps),
            "max_fps": _finite_or_none(self.max_fps),
            "avg_cpu_ms": _finite_or_none(self.avg_cpu_ms),
            "avg_gpu_ms": self.avg_gpu_ms,
            "percentile95_fps": _finite_or_none(self.percentile95_fps),
            "percentile99_fps": _finite_or_none(self.percentile99_fps),
            "sample_count": self.sample_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Summary":
        return cls(
            avg_fps=_nan_if_none(data.get("avg_fps")),
            min_fps=_nan_if_none(data.get("min_fps")),
            max_fps=_nan_if_none(data.get("max_fps")),
            avg_cpu_ms=_nan_if_none(data.get("avg_cpu_ms")),
            avg_gpu_ms=data.get("avg_gpu_ms"),
            percentile95_fps=_nan_if_none(data.get("percentile95_fps")),
            percentile99_fps=_nan_if_none(data.get("percentile99_fps")),
            sample_count=int(data.get("sample_count", 0)),
        )


@dataclass(frozen=True)
class TestResult:
    """Outcome of one (renderer, scene, resolution) cell."""
    renderer: str
    scene: str
    resolution: Resolution
    metrics: Tuple[Metric, ...]
    summary: Summary

    # Keep pytest from collecting this class
    __test__ = False

    @property
    def label(self) -> str:
        return f"{self.renderer} - {self.scene} - {self.resolution[0]}x{self.resolution[1]}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "renderer": self.renderer,
            "scene": self.scene,
            "resolution": list(self.resolution),
            "metrics": [m.to_dict() for m in self.metrics],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestResult":
        width, height = data["resolution"]
        return cls(
            renderer=data["renderer"],
            scene=data["scene"],
            resolution=(int(width), int(height)),
            metrics=tuple(Metric.from_dict(m) for m in data.get("metrics", [])),
            summary=Summary.from_dict(data.get("summary", {})),
        )


@dataclass
class BenchmarkResults:
    """The single output value of a run.

    Attributes:
        config: Configuration the run was driven by
        start_time: When the run started
        end_time: When the run finished
        results: Completed cells in execution order
        system_info: Host snapshot taken at run start
    """
    config: BenchmarkConfig
    start_time: datetime
    end_time: datetime
    results: List[TestResult] = field(default_factory=list)
    system_info: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def renderers_completed(self) -> List[str]:
        """Backends with at least one result, in config order."""
        present = {r.renderer for r in self.results}
        return [name for name in self.config.renderers if name in present]

    def results_for(
        self,
        renderer: Optional[str] = None,
        scene: Optional[str] = None,
    ) -> List[TestResult]:
        """Filter results by renderer and/or scene."""
        return [
            r for r in self.results
            if (renderer is None or r.renderer == renderer)
            and (scene is None or r.scene == scene)
        ]

    def all_metrics(self) -> List[Metric]:
        """Every sampled metric across all cells, in run order."""
        return [m for r in self.results for m in r.metrics]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "system_info": self.system_info,
            "results": [r.to_dict() for r in self.results],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkResults":
        return cls(
            config=BenchmarkConfig.from_dict(data["config"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            results=[TestResult.from_dict(r) for r in data.get("results", [])],
            system_info=data.get("system_info", {}),
        )
