"""Export and comparison formatting for benchmark results.

CSV rows follow the per-frame schema shared with earlier exports:
    frame,timestamp,api,scene,fps,cpu_ms,gpu_ms,vram_mb,draw_calls,triangles
fps, cpu_ms and gpu_ms carry two decimals; a missing GPU time is written
as N/A.
"""

import csv
import io
import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .exceptions import GpuBenchError
from .models import BenchmarkResults, Metric, TestResult

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "frame",
    "timestamp",
    "api",
    "scene",
    "fps",
    "cpu_ms",
    "gpu_ms",
    "vram_mb",
    "draw_calls",
    "triangles",
]

NOT_AVAILABLE = "N/A"


def _fixed(value: Optional[float]) -> str:
    if value is None or math.isnan(value):
        return NOT_AVAILABLE
    return f"{value:.2f}"


def metric_to_row(metric: Metric) -> List[Union[str, int]]:
    """Render one Metric as a CSV row."""
    return [
        metric.frame,
        metric.timestamp,
        metric.api,
        metric.scene,
        _fixed(metric.fps),
        _fixed(metric.cpu_ms),
        _fixed(metric.gpu_ms),
        metric.vram_mb,
        metric.draw_calls or 0,
        metric.triangles or 0,
    ]


class BenchmarkReporter:
    """Generates benchmark reports in various formats.

    Example:
        >>> BenchmarkReporter.generate_csv_report(results, Path("frames.csv"))
        >>> print(BenchmarkReporter.generate_comparison_table(results))
    """

    @staticmethod
    def format_csv(metrics: Iterable[Metric]) -> str:
        """Render metrics as CSV text with a header row."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_FIELDS)
        for metric in metrics:
            writer.writerow(metric_to_row(metric))
        return buffer.getvalue()

    @staticmethod
    def generate_csv_report(
        results: Union[BenchmarkResults, TestResult, List[TestResult]],
        output_path: Path,
    ) -> Path:
        """Write every sampled metric to a CSV file.

        Args:
            results: Run results, a single cell, or a list of cells
            output_path: Path for output file

        Returns:
            Path to generated report
        """
        if isinstance(results, BenchmarkResults):
            metrics = results.all_metrics()
        elif isinstance(results, TestResult):
            metrics = list(results.metrics)
        else:
            metrics = [m for r in results for m in r.metrics]

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(BenchmarkReporter.format_csv(metrics), encoding="utf-8")

        logger.info(f"Exported {len(metrics)} data points to {output_path}")
        return output_path

    @staticmethod
    def generate_json_report(
        results: BenchmarkResults,
        output_path: Path,
        pretty: bool = True,
    ) -> Path:
        """Write the full run, including per-frame metrics, as JSON.

        Args:
            results: Run results
            output_path: Path for output file
            pretty: Whether to format JSON for readability

        Returns:
            Path to generated report
        """
        report = {
            "generated_at": datetime.now().isoformat(),
            **results.to_dict(),
        }

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2 if pretty else None)

        logger.info(f"JSON report saved to: {output_path}")
        return output_path

    @staticmethod
    def load_results(path: Path) -> BenchmarkResults:
        """Load a report written by generate_json_report.

        Raises:
            GpuBenchError: If the file cannot be read or is not a results report
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise GpuBenchError(f"Cannot read results file: {path}", cause=e)

        try:
            return BenchmarkResults.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise GpuBenchError(f"Not a benchmark results file: {path}", cause=e)

    @staticmethod
    def comparison_rows(results: BenchmarkResults) -> List[Dict[str, object]]:
        """Average FPS per (scene, resolution), one column per configured renderer.

        Each row holds "scene", "resolution", "values" (renderer -> avg fps
        or None when absent) and "winner" (fastest renderer or None).
        """
        rows: List[Dict[str, object]] = []
        for scene in results.config.scenes:
            for resolution in results.config.resolutions:
                values: Dict[str, Optional[float]] = {}
                for renderer in results.config.renderers:
                    match = next(
                        (
                            r for r in results.results
                            if r.renderer == renderer and r.scene == scene and r.resolution == resolution
                        ),
                        None,
                    )
                    if match is None or match.summary.is_empty:
                        values[renderer] = None
                    else:
                        values[renderer] = match.summary.avg_fps

                present = {k: v for k, v in values.items() if v is not None}
                if not present:
                    continue
                rows.append({
                    "scene": scene,
                    "resolution": f"{resolution[0]}x{resolution[1]}",
                    "values": values,
                    "winner": max(present, key=present.get),
                })
        return rows

    @staticmethod
    def generate_comparison_table(results: BenchmarkResults) -> str:
        """Text table of average FPS per scene and resolution.

        The fastest renderer in each row is marked with '*'; renderers
        without a result show '-'.
        """
        rows = BenchmarkReporter.comparison_rows(results)
        if not rows:
            return "No results to compare."

        renderers = list(results.config.renderers)
        header = f"{'Scene':<20} {'Resolution':<12}" + "".join(
            f" {r.upper() + ' FPS':>14}" for r in renderers
        )
        width = len(header)
        lines = ["=" * width, "BENCHMARK COMPARISON", "=" * width, header, "-" * width]

        for row in rows:
            cells = []
            for renderer in renderers:
                value = row["values"][renderer]
                if value is None:
                    cells.append(f" {'-':>14}")
                else:
                    mark = "*" if renderer == row["winner"] else " "
                    cells.append(f" {value:>13.1f}{mark}")
            lines.append(f"{row['scene']:<20} {row['resolution']:<12}" + "".join(cells))

        lines.append("-" * width)
        return "\n".join(lines)

    @staticmethod
    def generate_detailed_table(results: BenchmarkResults) -> str:
        """Text table with one line per TestResult."""
        if not results.results:
            return "No results."

        header = (
            f"{'Renderer':<10} {'Scene':<16} {'Resolution':<11} {'Avg FPS':>8} {'Min FPS':>8} "
            f"{'95% FPS':>8} {'CPU ms':>8} {'GPU ms':>8} {'Draws':>7} {'Triangles':>10}"
        )
        lines = [header, "-" * len(header)]

        for result in results.results:
            summary = result.summary
            first = result.metrics[0] if result.metrics else None
            lines.append(
                f"{result.renderer:<10} {result.scene:<16} "
                f"{result.resolution[0]}x{result.resolution[1]:<6} "
                f"{_one_decimal(summary.avg_fps):>8} {_one_decimal(summary.min_fps):>8} "
                f"{_one_decimal(summary.percentile95_fps):>8} {_fixed(summary.avg_cpu_ms):>8} "
                f"{_fixed(summary.avg_gpu_ms):>8} "
                f"{(first.draw_calls or 0) if first else 0:>7} "
                f"{(first.triangles or 0) if first else 0:>10}"
            )
        return "\n".join(lines)


def _one_decimal(value: float) -> str:
    if value is None or math.isnan(value):
        return NOT_AVAILABLE
    return f"{value:.1f}"
