"""GPU timer interface shared by every timing strategy."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

NANOSECONDS_PER_MILLISECOND = 1_000_000


class TimerKind(Enum):
    """Timing strategy, chosen once when a renderer is acquired."""
    POLLING = "polling"
    TIMESTAMP_RESOLVE = "timestamp_resolve"
    UNSUPPORTED = "unsupported"


class GpuTimer(ABC):
    """Measures GPU execution time of one render pass at a time.

    begin() and end() bracket the render call. poll() returns a finished
    measurement in milliseconds, or None when nothing has completed yet;
    it never waits for the GPU to finish work.
    """

    @property
    @abstractmethod
    def kind(self) -> TimerKind:
        pass

    @property
    def supported(self) -> bool:
        """False when this timer can never produce a value."""
        return self.kind is not TimerKind.UNSUPPORTED

    @abstractmethod
    def begin(self) -> None:
        pass

    @abstractmethod
    def end(self) -> None:
        pass

    @abstractmethod
    async def poll(self) -> Optional[float]:
        pass

    @abstractmethod
    def discard_pending(self) -> None:
        """Drop measurements that have not been collected by poll()."""
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Release every GPU object held by the timer."""
        pass


class NullGpuTimer(GpuTimer):
    """Degraded timer for devices without timing capability."""

    @property
    def kind(self) -> TimerKind:
        return TimerKind.UNSUPPORTED

    def begin(self) -> None:
        pass

    def end(self) -> None:
        pass

    async def poll(self) -> Optional[float]:
        return None

    def discard_pending(self) -> None:
        pass

    def destroy(self) -> None:
        pass
