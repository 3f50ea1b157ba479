"""
Interpolation clock

Between polls the progress display is advanced locally: every
``progress_interval`` (250ms) the clock estimates the position from the
baseline snapshot and the elapsed monotonic time, and pushes it to the view.

The clock holds exactly one baseline and at most one timer task. ``restart``
always cancels the previous timer before starting a new one, so a fresh
snapshot fully supersedes the old baseline. Once the estimate runs past the
track duration the clock stops by itself; the next poll decides whether the
next track started or the player went idle.
"""

import asyncio
from typing import Callable, Optional

from ..spotify.models import PlaybackSnapshot
from ..utils.helpers import monotonic_ms
from ..utils.logger import get_logger
from .view import PlaybackView


class InterpolationClock:
    """
    Local progress estimator driven by the latest snapshot

    Args:
        view: View receiving ``show_progress``
        interval: Seconds between redraws
        clock: Millisecond monotonic clock
    """

    def __init__(
        self,
        view: PlaybackView,
        interval: float = 0.25,
        clock: Callable[[], float] = monotonic_ms
    ):
        self.view = view
        self.interval = interval
        self._clock = clock
        self.logger = get_logger(__name__)

        self._baseline: Optional[PlaybackSnapshot] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        """True while the clock has a playing baseline to interpolate from"""
        return self._baseline is not None

    @property
    def baseline(self) -> Optional[PlaybackSnapshot]:
        return self._baseline

    def restart(self, snapshot: Optional[PlaybackSnapshot]) -> None:
        """
        Replace the baseline, starting the timer only if the snapshot is playing

        Args:
            snapshot: New baseline, None or paused snapshots leave the clock stopped
        """
        self.stop()
        if snapshot is None or not snapshot.is_playing:
            return
        self._baseline = snapshot
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        self._baseline = None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def tick(self) -> Optional[int]:
        """
        Compute and render the current estimate

        Returns:
            Estimated position in ms, None if the clock is stopped or the
            estimate ran past the track duration (which stops the clock)
        """
        baseline = self._baseline
        if baseline is None:
            return None

        position = baseline.raw_position(self._clock())
        if position > baseline.duration_ms:
            self.logger.debug(f"Track {baseline.track_id} presumed finished, stopping progress clock")
            self._baseline = None
            return None

        estimate = int(max(0.0, position))
        self.view.show_progress(estimate, baseline.duration_ms)
        return estimate

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self.tick() is None:
                break
