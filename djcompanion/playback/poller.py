"""
Remote state poller

Fetches the authoritative playback snapshot every ``poll_interval`` seconds
(2.5s), starting with an immediate poll so the first paint does not wait a
full interval.

Per tick:

1. Not authenticated: the tick is skipped silently (normal while logged out)
2. Nothing loaded: the progress clock stops, the now-playing display is left
   as it is so an intermittent empty response does not flicker
3. Snapshot: the shared state is replaced, the track is highlighted, the BPM
   is looked up in the library mirror, the now-playing display is refreshed
   and the interpolation clock is restarted (or stopped when paused)

Any other failure is logged and the next tick simply tries again.
"""

import asyncio
from typing import Callable, Optional, Set

from ..spotify.client import PlaybackAPI
from ..spotify.models import PlaybackSnapshot
from ..utils.exceptions import DJCompanionError, NotAuthenticatedError
from ..utils.helpers import monotonic_ms
from ..utils.logger import get_logger
from .clock import InterpolationClock
from .state import PlaybackState
from .view import PlaybackView


class RemoteStatePoller:
    """
    Periodic poll of ``GET /me/player``

    Args:
        api: Playback API client
        state: Shared playback state
        clock: Interpolation clock to restart on every snapshot
        view: View to refresh
        library: Optional BPM lookup with a ``bpm_for(track_id)`` method
        interval: Seconds between polls
        time_source: Millisecond monotonic clock stamping ``sampled_at``
    """

    def __init__(
        self,
        api: PlaybackAPI,
        state: PlaybackState,
        clock: InterpolationClock,
        view: PlaybackView,
        library=None,
        interval: float = 2.5,
        time_source: Callable[[], float] = monotonic_ms
    ):
        self.api = api
        self.state = state
        self.clock = clock
        self.view = view
        self.library = library
        self.interval = interval
        self._now = time_source
        self.logger = get_logger(__name__)

        self._task: Optional[asyncio.Task] = None
        self._scheduled: Set[asyncio.TimerHandle] = set()
        self._extra_polls: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """(Re)start polling with an immediate first poll"""
        self.stop()
        self._task = asyncio.create_task(self._run())
        self.logger.debug(f"Polling every {self.interval:.2f}s")

    def stop(self) -> None:
        """Stop polling, drop scheduled extra polls and stop the progress clock"""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        for handle in self._scheduled:
            handle.cancel()
        self._scheduled.clear()

        for extra in self._extra_polls:
            if not extra.done():
                extra.cancel()
        self._extra_polls.clear()

        self.clock.stop()

    def schedule_poll(self, delay: float) -> None:
        """
        Run one extra poll after ``delay`` seconds, outside the regular cadence

        Args:
            delay: Seconds to wait before polling
        """
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def _fire():
            self._scheduled.discard(handle)
            task = loop.create_task(self.poll_once())
            self._extra_polls.add(task)
            task.add_done_callback(self._extra_polls.discard)

        handle = loop.call_later(delay, _fire)
        self._scheduled.add(handle)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                # A broken tick must not end polling, the next one retries
                self.logger.exception("Unexpected error during poll")
            await asyncio.sleep(self.interval)

    async def poll_once(self) -> Optional[PlaybackSnapshot]:
        """
        Perform a single poll and apply the result

        Returns:
            The applied snapshot, None if the tick was skipped, empty or failed
        """
        try:
            data = await self.api.get_playback_state()
            snapshot = PlaybackSnapshot.from_spotify_data(data, self._now())
        except NotAuthenticatedError:
            self.logger.debug("Poll skipped: not authenticated")
            return None
        except DJCompanionError as e:
            self.logger.warning(f"Poll error: {e}")
            return None

        if snapshot is None:
            # Nothing playing: keep the display, only halt the animation
            self.clock.stop()
            return None

        self._apply(snapshot)
        return snapshot

    def _apply(self, snapshot: PlaybackSnapshot) -> None:
        self.state.apply_snapshot(snapshot)
        self.view.highlight_track(snapshot.track_id, snapshot.is_playing)

        bpm = self.library.bpm_for(snapshot.track_id) if self.library is not None else None
        self.view.show_now_playing(snapshot, bpm)
        self.view.show_progress(snapshot.estimate_position(snapshot.sampled_at), snapshot.duration_ms)
        self.view.set_play_button(not snapshot.is_playing)

        self.clock.restart(snapshot)
