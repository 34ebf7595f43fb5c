"""Exception hierarchy for gpubench.

Every error raised by the harness derives from GpuBenchError so callers can
catch broadly when needed. Most failures during a run are handled locally
and never escape BenchmarkOrchestrator.run(); the classes below describe
what collaborators may raise and what the orchestrator logs.

Exception Hierarchy:
    GpuBenchError (base)
    +-- ConfigurationError
    +-- BackendUnavailableError
    +-- BufferMapError
    +-- CellFailedError

Timing capability absence and disjoint queries are not exceptions: the
first is a degraded timer mode, the second a per-sample discard.
"""

from typing import Any, Dict, Optional, Sequence, Tuple


class GpuBenchError(Exception):
    """Base exception for all gpubench errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
        cause: Original exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(GpuBenchError):
    """Invalid benchmark configuration.

    Raised when a BenchmarkConfig field is missing or out of range, or a
    configuration file cannot be read or parsed.

    Examples:
        - Empty renderer list
        - Negative warmup time
        - Resolution that is not a (width, height) pair
        - Unsupported config file extension
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        valid_values: Optional[Sequence[Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Description of configuration error
            config_key: Name of the invalid configuration key
            config_value: The invalid value provided
            valid_values: Valid values (if applicable)
            cause: Original exception
        """
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = config_value
        if valid_values:
            details["valid_values"] = list(valid_values)
        super().__init__(message, details=details, cause=cause)


class BackendUnavailableError(GpuBenchError):
    """A rendering backend could not be acquired.

    Renderer factories raise this when the graphics API or adapter is
    absent or access is denied. The orchestrator skips every cell of that
    backend and keeps going.
    """

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if backend:
            details["backend"] = backend
        super().__init__(message, details=details, cause=cause)


class BufferMapError(GpuBenchError):
    """Asynchronous mapping of a GPU readback buffer was rejected."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if reason:
            details["reason"] = reason
        super().__init__(message, details=details, cause=cause)


class CellFailedError(GpuBenchError):
    """A collaborator raised while a single benchmark cell was running."""

    def __init__(
        self,
        message: str,
        renderer: Optional[str] = None,
        scene: Optional[str] = None,
        resolution: Optional[Tuple[int, int]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if renderer:
            details["renderer"] = renderer
        if scene:
            details["scene"] = scene
        if resolution is not None:
            details["resolution"] = f"{resolution[0]}x{resolution[1]}"
        super().__init__(message, details=details, cause=cause)
