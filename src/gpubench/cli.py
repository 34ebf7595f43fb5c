"""Command line interface for gpubench.

Works on files only: saved JSON results and benchmark config files.
Running a benchmark needs live renderers and is done from application
code through BenchmarkOrchestrator.
"""

import argparse
import math
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import BenchmarkConfig, load_config
from .exceptions import GpuBenchError
from .models import BenchmarkResults
from .reporting import BenchmarkReporter
from .utils.logging import LogConfig, configure_logging, get_logger

logger = get_logger("cli")


def _fmt(value: Optional[float], digits: int = 1) -> str:
    if value is None or math.isnan(value):
        return "N/A"
    return f"{value:.{digits}f}"


def build_comparison_table(results: BenchmarkResults) -> Table:
    """Average FPS per scene and resolution, winner highlighted."""
    table = Table(title="Benchmark Comparison", show_lines=False)
    table.add_column("Scene", style="cyan")
    table.add_column("Resolution")
    for renderer in results.config.renderers:
        table.add_column(f"{renderer.upper()} FPS", justify="right")

    for row in BenchmarkReporter.comparison_rows(results):
        cells = []
        for renderer in results.config.renderers:
            value = row["values"][renderer]
            if value is None:
                cells.append("-")
            elif renderer == row["winner"]:
                cells.append(f"[bold green]{value:.1f} *[/bold green]")
            else:
                cells.append(f"{value:.1f}")
        table.add_row(row["scene"], row["resolution"], *cells)
    return table


def build_detailed_table(results: BenchmarkResults) -> Table:
    """One row per completed cell."""
    table = Table(title="Detailed Results")
    for column in ("Renderer", "Scene", "Resolution"):
        table.add_column(column)
    for column in ("Avg FPS", "Min FPS", "95% FPS", "CPU ms", "GPU ms", "Draws", "Triangles"):
        table.add_column(column, justify="right")

    for result in results.results:
        summary = result.summary
        first = result.metrics[0] if result.metrics else None
        table.add_row(
            result.renderer,
            result.scene,
            f"{result.resolution[0]}x{result.resolution[1]}",
            _fmt(summary.avg_fps),
            _fmt(summary.min_fps),
            _fmt(summary.percentile95_fps),
            _fmt(summary.avg_cpu_ms, 2),
            _fmt(summary.avg_gpu_ms, 2),
            str((first.draw_calls or 0) if first else 0),
            str((first.triangles or 0) if first else 0),
        )
    return table


def build_config_table(config: BenchmarkConfig, inter_cell_delay: float) -> Table:
    table = Table(title="Benchmark Configuration", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Renderers", ", ".join(config.renderers))
    table.add_row("Scenes", ", ".join(config.scenes))
    table.add_row("Resolutions", ", ".join(f"{w}x{h}" for w, h in config.resolutions))
    table.add_row("Duration", f"{config.duration:g}s")
    table.add_row("Warmup", f"{config.warmup_time:g}s")
    table.add_row("Cells", str(config.cell_count))
    table.add_row("Estimated time", f"{config.estimated_duration(inter_cell_delay):.0f}s")
    return table


def cmd_show(args, console: Console) -> int:
    results = BenchmarkReporter.load_results(Path(args.results))

    console.print(
        f"Run of {len(results.results)} cell(s), "
        f"{results.duration_seconds:.1f}s, started {results.start_time:%Y-%m-%d %H:%M:%S}"
    )
    if not results.results:
        console.print("[yellow]No results recorded.[/yellow]")
        return 0

    console.print(build_comparison_table(results))
    console.print(build_detailed_table(results))
    return 0


def cmd_export(args, console: Console) -> int:
    results = BenchmarkReporter.load_results(Path(args.results))
    output = BenchmarkReporter.generate_csv_report(results, Path(args.csv))
    console.print(f"[green]Exported {len(results.all_metrics())} data points to {output}[/green]")
    return 0


def cmd_check_config(args, console: Console) -> int:
    config = load_config(args.config)
    console.print(build_config_table(config, args.inter_cell_delay))
    console.print("[green]Configuration is valid[/green]")
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpubench",
        description="Inspect and export cross-backend GPU benchmark results",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="Print comparison tables for a results file")
    show_parser.add_argument("results", help="JSON results file")
    show_parser.set_defaults(func=cmd_show)

    export_parser = subparsers.add_parser("export", help="Export per-frame metrics from a results file")
    export_parser.add_argument("results", help="JSON results file")
    export_parser.add_argument("--csv", required=True, help="CSV output path")
    export_parser.set_defaults(func=cmd_export)

    config_parser = subparsers.add_parser("check-config", help="Validate a benchmark config file")
    config_parser.add_argument("config", help="YAML or JSON config file")
    config_parser.add_argument(
        "--inter-cell-delay",
        type=float,
        default=1.0,
        help="Pause between cells used for the time estimate (default: 1.0)",
    )
    config_parser.set_defaults(func=cmd_check_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``gpubench`` command.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(LogConfig(log_level=args.log_level, log_format=args.log_format))
    console = Console()

    try:
        return args.func(args, console)
    except GpuBenchError as e:
        logger.error(str(e), command=args.command)
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        return 1
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
