"""Host information and memory estimates."""

import logging
import os
import platform
from typing import Any, Dict

import psutil

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 ** 2


def process_memory_mb() -> int:
    """Resident memory of this process in MB.

    Used as the per-sample vram_mb estimate when the renderer offers no
    better figure. Returns 0 if the process cannot be inspected.
    """
    try:
        return int(round(psutil.Process().memory_info().rss / BYTES_PER_MB))
    except psutil.Error as e:
        logger.debug(f"Memory probe failed: {e}")
        return 0


class SystemProfiler:
    """Collects system information for benchmark context."""

    @staticmethod
    def get_system_info() -> Dict[str, Any]:
        """Collect host specs.

        Returns:
            Dictionary containing platform, CPU and memory details
        """
        info: Dict[str, Any] = {
            "platform": platform.system(),
            "platform_release": platform.release(),
            "architecture": platform.machine(),
            "processor": platform.processor(),
            "python_version": platform.python_version(),
            "hostname": platform.node(),
            "cpu_count": psutil.cpu_count(logical=True) or os.cpu_count() or 0,
        }

        try:
            mem = psutil.virtual_memory()
            info["memory_total_gb"] = round(mem.total / (1024 ** 3), 2)
            info["memory_available_gb"] = round(mem.available / (1024 ** 3), 2)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Could not read memory info: {e}")
            info["memory_total_gb"] = None
            info["memory_available_gb"] = None

        return info
