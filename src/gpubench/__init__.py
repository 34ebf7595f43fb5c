"""gpubench - Cross-backend GPU rendering benchmark harness."""
__version__ = "0.3.0"

from .config import BenchmarkConfig, RESOLUTION_PRESETS, load_config, parse_resolution
from .models import BenchmarkResults, Metric, Summary, TestResult
from .aggregation import compute_summary, percentile_point
from .orchestrator import BenchmarkOrchestrator
from .clock import RealtimeFrameClock
from .system import SystemProfiler, process_memory_mb
from .reporting import BenchmarkReporter

# GPU timing
from .timing import (
    GpuTimer,
    NullGpuTimer,
    PollingQueryTimer,
    TimerKind,
    TimestampResolveTimer,
    create_gpu_timer,
    select_timer_kind,
)

from .exceptions import (
    GpuBenchError,
    ConfigurationError,
    BackendUnavailableError,
    BufferMapError,
    CellFailedError,
)

__all__ = [
    "__version__",
    "BenchmarkConfig",
    "RESOLUTION_PRESETS",
    "load_config",
    "parse_resolution",
    "BenchmarkResults",
    "Metric",
    "Summary",
    "TestResult",
    "compute_summary",
    "percentile_point",
    "BenchmarkOrchestrator",
    "RealtimeFrameClock",
    "SystemProfiler",
    "process_memory_mb",
    "BenchmarkReporter",
    "GpuTimer",
    "NullGpuTimer",
    "PollingQueryTimer",
    "TimerKind",
    "TimestampResolveTimer",
    "create_gpu_timer",
    "select_timer_kind",
    "GpuBenchError",
    "ConfigurationError",
    "BackendUnavailableError",
    "BufferMapError",
    "CellFailedError",
]
