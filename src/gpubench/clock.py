"""Frame pacing for headless runs.

RealtimeFrameClock stands in for a display-refresh callback: next_frame()
suspends until the next refresh tick of a fixed-rate display. Embedding
applications with a real presentation loop supply their own FrameClock.
"""

import asyncio
import time

DEFAULT_REFRESH_RATE = 60.0


class RealtimeFrameClock:
    """Wall-clock frame pacing at a fixed refresh rate.

    Ticks are aligned to a grid starting at construction. If a frame
    overruns, next_frame() yields to the event loop and returns at once
    rather than queueing missed ticks.
    """

    def __init__(self, refresh_rate: float = DEFAULT_REFRESH_RATE):
        if refresh_rate <= 0:
            raise ValueError("refresh_rate must be positive")
        self.refresh_rate = refresh_rate
        self.frame_interval_ms = 1000.0 / refresh_rate
        self._origin = time.perf_counter()
        self._epoch_ms = time.time() * 1000.0

    def now(self) -> float:
        return (time.perf_counter() - self._origin) * 1000.0

    def wall_time_ms(self) -> int:
        # Anchored to the monotonic clock so samples never go backwards
        return int(self._epoch_ms + self.now())

    async def next_frame(self) -> float:
        now = self.now()
        next_tick = (now // self.frame_interval_ms + 1) * self.frame_interval_ms
        await asyncio.sleep((next_tick - now) / 1000.0)
        return self.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
