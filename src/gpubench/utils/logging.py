"""Structured logging utilities for gpubench.

Two conventions, one per kind of module:

- Leaf library modules (timing, config, reporting, system) use
  ``logging.getLogger(__name__)`` and log plain messages.
- Components that report run events with structured fields (the
  orchestrator and the command line) use ``get_logger(component)``.

Both end up below the ``gpubench`` logger. No module configures handlers
itself; applications (and the ``gpubench`` command) call
configure_logging() once to choose a format and destination.

Example usage:
    >>> from gpubench.utils.logging import LogConfig, configure_logging, get_logger
    >>>
    >>> configure_logging(LogConfig(log_level="DEBUG", log_format="json"))
    >>> logger = get_logger("orchestrator")
    >>> logger.info("Cell complete", renderer="webgl", samples=12)
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Literal, Optional

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

ROOT_LOGGER_NAME = "gpubench"
VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LogConfig:
    """Configuration for gpubench logging.

    Attributes:
        log_level: Default log level for all components
        log_format: Output format ('text' for human-readable, 'json' for structured)
        log_file: Optional file path for log output
        component_levels: Component-specific log levels, keyed by module path
            below ``gpubench`` (e.g. "timing" or "orchestrator")
        max_file_size_mb: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep
        include_timestamp: Whether to include timestamps in text output
    """

    log_level: LogLevel = "INFO"
    log_format: LogFormat = "text"
    log_file: Optional[str] = None
    component_levels: Dict[str, LogLevel] = field(default_factory=dict)
    max_file_size_mb: int = 10
    backup_count: int = 5
    include_timestamp: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.log_level.upper() not in VALID_LEVELS:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. "
                f"Must be one of: {', '.join(VALID_LEVELS)}"
            )
        if self.log_format not in ("text", "json"):
            raise ValueError(
                f"Invalid log_format '{self.log_format}'. "
                "Must be 'text' or 'json'"
            )
        for component, level in self.component_levels.items():
            if level.upper() not in VALID_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}' for component '{component}'. "
                    f"Must be one of: {', '.join(VALID_LEVELS)}"
                )


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs one object per record:
    {"timestamp": "...Z", "level": "INFO", "component": "orchestrator",
     "message": "Cell complete", "renderer": "webgl", "samples": 12}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "component": record.name.split(".")[-1],
            "message": record.getMessage(),
        }

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_entry.update(extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    2026-01-05 10:30:45 | INFO     | gpubench.orchestrator | Cell complete [renderer=webgl, samples=12]
    """

    def __init__(self, include_timestamp: bool = True) -> None:
        if include_timestamp:
            fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        else:
            fmt = "%(levelname)-8s | %(name)s | %(message)s"
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        text = super().formatMessage(record)
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            extra_str = ", ".join(f"{k}={v}" for k, v in extra_fields.items())
            text = f"{text} [{extra_str}]"
        return text


class GpuBenchLogger(logging.LoggerAdapter):
    """Logger adapter that turns keyword arguments into structured fields.

    Example:
        >>> logger = get_logger("orchestrator")
        >>> logger.warning("Backend skipped", backend="webgpu", reason="no adapter")
    """

    def __init__(
        self,
        logger: logging.Logger,
        component: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(logger, extra or {})
        self.component = component

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra_fields = {}
        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel", "extra"):
                extra_fields[key] = kwargs.pop(key)

        if self.extra:
            extra_fields.update(self.extra)

        kwargs.setdefault("extra", {})
        kwargs["extra"]["extra_fields"] = extra_fields
        return msg, kwargs

    def metric(self, metric_name: str, value: float, unit: Optional[str] = None, **kwargs: Any) -> None:
        """Log a named measurement."""
        extra: Dict[str, Any] = {"metric_name": metric_name, "metric_value": value}
        if unit:
            extra["metric_unit"] = unit
        extra.update(kwargs)
        self.info(f"Metric: {metric_name}={value}{unit or ''}", **extra)



def configure_logging(config: Optional[LogConfig] = None) -> LogConfig:
    """Install handlers on the ``gpubench`` logger.

    Replaces any handlers installed by an earlier call.

    Args:
        config: Logging configuration. If None, uses defaults.

    Returns:
        The configuration in effect
    """
    if config is None:
        config = LogConfig()

    level = getattr(logging, config.log_level.upper())
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if config.log_format == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = TextFormatter(include_timestamp=config.include_timestamp)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    for component, component_level in config.component_levels.items():
        logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}").setLevel(
            getattr(logging, component_level.upper())
        )

    root_logger.propagate = False
    return config


def get_logger(component: str) -> GpuBenchLogger:
    """Get a structured logger for a component.

    Does not install handlers; records propagate to whatever the
    application configured.

    Args:
        component: Component name below ``gpubench`` (e.g. 'orchestrator')
    """
    return GpuBenchLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}"), component)
