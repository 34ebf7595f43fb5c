"""Summary statistics over sampled frame metrics.

The percentile estimate is a non-interpolated point estimate: sort the
frame rates ascending and take the element at floor(n * q). It is biased
for small sample counts but is kept as-is so summaries stay comparable
across runs and exports.
"""

import math
from typing import List, Sequence

import numpy as np

from .models import Metric, Summary


def percentile_point(sorted_values: Sequence[float], fraction: float) -> float:
    """Return sorted_values[floor(n * fraction)].

    Args:
        sorted_values: Values in ascending order
        fraction: Quantile in [0, 1)

    Returns:
        The selected element, or NaN for an empty sequence
    """
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    index = min(int(math.floor(n * fraction)), n - 1)
    return float(sorted_values[index])


def compute_summary(metrics: Sequence[Metric]) -> Summary:
    """Compute a cell Summary from its ordered metrics.

    Pure and idempotent. avg_gpu_ms averages only the samples that carry a
    GPU time and is None when none do. An empty input yields
    Summary.empty() instead of raising.
    """
    if not metrics:
        return Summary.empty()

    fps = np.sort(np.asarray([m.fps for m in metrics], dtype=np.float64))
    cpu = np.asarray([m.cpu_ms for m in metrics], dtype=np.float64)
    gpu: List[float] = [m.gpu_ms for m in metrics if m.gpu_ms is not None]

    return Summary(
        avg_fps=float(np.mean(fps)),
        min_fps=float(fps[0]),
        max_fps=float(fps[-1]),
        avg_cpu_ms=float(np.mean(cpu)),
        avg_gpu_ms=float(np.mean(gpu)) if gpu else None,
        percentile95_fps=percentile_point(fps, 0.95),
        percentile99_fps=percentile_point(fps, 0.99),
        sample_count=len(metrics),
    )
