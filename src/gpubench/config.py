"""Benchmark matrix configuration for gpubench."""
import json
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple, Union

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Resolution = Tuple[int, int]

RESOLUTION_PRESETS: Dict[str, Resolution] = {
    "720p": (1280, 720),
    "1080p": (1920, 1080),
    "4K": (3840, 2160),
}

_RESOLUTION_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


def parse_resolution(value: Union[str, Sequence[int]]) -> Resolution:
    """Normalize a resolution given as a preset, "WxH" string or pair.

    Args:
        value: "1080p", "1920x1080" or [1920, 1080]

    Returns:
        (width, height) tuple of positive ints

    Raises:
        ConfigurationError: If the value cannot be interpreted
    """
    if isinstance(value, str):
        if value in RESOLUTION_PRESETS:
            return RESOLUTION_PRESETS[value]
        match = _RESOLUTION_PATTERN.match(value)
        if not match:
            raise ConfigurationError(
                f"Invalid resolution '{value}'",
                config_key="resolutions",
                config_value=value,
                valid_values=list(RESOLUTION_PRESETS),
            )
        width, height = int(match.group(1)), int(match.group(2))
    else:
        try:
            width, height = value
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                "Resolution must be a (width, height) pair",
                config_key="resolutions",
                config_value=value,
                cause=e,
            )
        if isinstance(width, bool) or isinstance(height, bool) \
                or not isinstance(width, int) or not isinstance(height, int):
            raise ConfigurationError(
                "Resolution dimensions must be integers",
                config_key="resolutions",
                config_value=value,
            )

    if width <= 0 or height <= 0:
        raise ConfigurationError(
            "Resolution dimensions must be positive",
            config_key="resolutions",
            config_value=value,
        )
    return (width, height)


@dataclass(frozen=True)
class BenchmarkConfig:
    """Immutable description of the benchmark matrix.

    The run covers every (renderer, scene, resolution) combination, with
    renderers as the outermost loop.

    Attributes:
        renderers: Ordered backend ids, e.g. ("webgl", "webgpu")
        scenes: Ordered scene ids
        duration: Sampling window per cell in seconds
        warmup_time: Unsampled warmup per cell in seconds
        resolutions: Ordered (width, height) pairs
    """
    renderers: Tuple[str, ...]
    scenes: Tuple[str, ...]
    duration: float = 10.0
    warmup_time: float = 2.0
    resolutions: Tuple[Resolution, ...] = (RESOLUTION_PRESETS["1080p"],)

    def __post_init__(self) -> None:
        """Normalize sequences to tuples and validate values."""
        object.__setattr__(self, "renderers", self._id_tuple("renderers", self.renderers))
        object.__setattr__(self, "scenes", self._id_tuple("scenes", self.scenes))

        if isinstance(self.resolutions, str):
            raise ConfigurationError(
                "resolutions must be a list",
                config_key="resolutions",
                config_value=self.resolutions,
            )
        resolutions = tuple(parse_resolution(r) for r in self.resolutions)
        if not resolutions:
            raise ConfigurationError("At least one resolution is required", config_key="resolutions")
        object.__setattr__(self, "resolutions", resolutions)

        if isinstance(self.duration, bool) or not isinstance(self.duration, (int, float)) \
                or not math.isfinite(self.duration) or self.duration <= 0:
            raise ConfigurationError(
                "duration must be a finite, positive number of seconds",
                config_key="duration",
                config_value=self.duration,
            )
        if isinstance(self.warmup_time, bool) or not isinstance(self.warmup_time, (int, float)) \
                or not math.isfinite(self.warmup_time) or self.warmup_time < 0:
            raise ConfigurationError(
                "warmup_time must be zero or a finite, positive number of seconds",
                config_key="warmup_time",
                config_value=self.warmup_time,
            )

    @staticmethod
    def _id_tuple(key: str, values: Any) -> Tuple[str, ...]:
        if isinstance(values, str):
            raise ConfigurationError(f"{key} must be a list of ids", config_key=key, config_value=values)
        items = tuple(values)
        if not items:
            raise ConfigurationError(f"At least one entry is required in {key}", config_key=key)
        for item in items:
            if not isinstance(item, str) or not item:
                raise ConfigurationError(f"Invalid id in {key}", config_key=key, config_value=item)
        return items

    @property
    def cell_count(self) -> int:
        """Number of cells in the matrix."""
        return len(self.renderers) * len(self.scenes) * len(self.resolutions)

    def estimated_duration(self, inter_cell_delay: float = 1.0) -> float:
        """Upper bound on run time in seconds, excluding backend acquisition."""
        return self.cell_count * (self.warmup_time + self.duration + inter_cell_delay)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "renderers": list(self.renderers),
            "scenes": list(self.scenes),
            "duration": self.duration,
            "warmup_time": self.warmup_time,
            "resolutions": [list(r) for r in self.resolutions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkConfig":
        """Create a config from a dictionary.

        Accepts ``warmupTime`` as an alias of ``warmup_time``.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping", config_value=type(data).__name__)

        missing = [key for key in ("renderers", "scenes") if key not in data]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration keys: {', '.join(missing)}",
                config_key=missing[0],
            )

        kwargs: Dict[str, Any] = {
            "renderers": data["renderers"],
            "scenes": data["scenes"],
        }
        if "duration" in data:
            kwargs["duration"] = data["duration"]
        if "warmup_time" in data:
            kwargs["warmup_time"] = data["warmup_time"]
        elif "warmupTime" in data:
            kwargs["warmup_time"] = data["warmupTime"]
        if "resolutions" in data:
            kwargs["resolutions"] = data["resolutions"]

        return cls(**kwargs)


def load_config(path: Union[str, Path]) -> BenchmarkConfig:
    """Load a BenchmarkConfig from a YAML or JSON file.

    Args:
        path: File ending in .yaml, .yml or .json

    Returns:
        Validated BenchmarkConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ConfigurationError(
            f"Unsupported config file type: {path.name}",
            config_key="path",
            config_value=str(path),
            valid_values=[".yaml", ".yml", ".json"],
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file: {path}", config_key="path", cause=e)

    try:
        if suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse config file: {path}", config_key="path", cause=e)

    config = BenchmarkConfig.from_dict(data)
    logger.debug(f"Loaded benchmark config from {path}: {config.cell_count} cells")
    return config
