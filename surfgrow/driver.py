"""
Driver Module

Cooperative, soft real-time frame loop around a SurfaceGrowth run.

Each frame runs one complete step, hands the particle snapshot to a
consumer (typically a renderer) and sleeps for whatever is left of the
frame budget. A frame that overruns its budget schedules the next one
immediately; missed frames are dropped, never queued.
"""

from typing import Callable, Optional
import logging
import time

from surfgrow.core.growth import StepStats, SurfaceGrowth


logger = logging.getLogger(__name__)


class FrameDriver:
    """
    Steps a simulation at a target cadence until stopped.
    """

    def __init__(self, simulation: SurfaceGrowth, frame_budget: float = 1.0 / 30.0,
                 on_frame: Optional[Callable] = None,
                 clock: Callable[[], float] = time.perf_counter,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize driver.

        Args:
            simulation: A seeded SurfaceGrowth
            frame_budget: Target seconds per frame
            on_frame: Called as on_frame(particles, stats) after every step
            clock: Monotonic clock in seconds
            sleep: Sleep function in seconds
        """
        if frame_budget < 0:
            raise ValueError("Frame budget must be non-negative")
        self.simulation = simulation
        self.frame_budget = frame_budget
        self.on_frame = on_frame
        self.clock = clock
        self.sleep = sleep
        self.frames = 0
        self.dropped_frames = 0
        self.last_stats: Optional[StepStats] = None
        self._running = False

    def stop(self):
        """Stop after the current frame."""
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def run_frame(self) -> StepStats:
        """Run one step, hand it to on_frame, then sleep out the budget."""
        start = self.clock()
        stats = self.simulation.step()
        if self.on_frame is not None:
            self.on_frame(self.simulation.particles(), stats)
        elapsed = self.clock() - start

        self.frames += 1
        self.last_stats = stats
        remaining = self.frame_budget - elapsed
        if remaining < 0:
            self.dropped_frames += 1
            logger.debug("Frame %d overran budget by %.1f ms", self.frames, -remaining * 1000)
        self.sleep(max(remaining, 0.0))
        return stats

    def run(self, max_frames: Optional[int] = None) -> int:
        """
        Run frames until stop() is called or max_frames is reached.

        Returns:
            Number of frames run by this call
        """
        self._running = True
        count = 0
        while self._running and (max_frames is None or count < max_frames):
            self.run_frame()
            count += 1
        self._running = False
        logger.info("Driver stopped after %d frames (%d over budget)", count, self.dropped_frames)
        return count
