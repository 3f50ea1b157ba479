"""
Transport command dispatcher

Handles the two user-facing transport commands, ``play_track`` and
``toggle_play_pause``. Spotify throttles bursts of player commands and users
double-click, so every command class is protected by its own guard:

    Idle -> Pending -> (Committed | RolledBack) -> Idle

- A command is dropped while another command of the same class is pending,
  or within ``command_spacing_ms`` (500ms) of the last recorded one
- The pending flag is taken synchronously, before the first ``await``, and
  released on every exit path by ``CommandGuard.hold()``
- ``play_track`` records its timestamp when accepted; ``toggle_play_pause``
  records it only on success so a failure never blocks a prompt retry

``toggle_play_pause`` is optimistic: the paused belief, the play button and
the progress clock change before the remote confirms, and are reverted if the
command fails. ``play_track`` has nothing to revert.

Every command resolves to a ``CommandResult``; failures are reported through
the ``StatusReporter`` and never raised into the caller's event loop.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Callable, Dict, Iterator, Optional

from ..config.auth import TokenProvider
from ..spotify.client import PlaybackAPI
from ..spotify.models import CommandKind, CommandResult, PlaybackSnapshot
from ..utils.exceptions import CommandError, DJCompanionError, NoDeviceError, NotAuthenticatedError
from ..utils.helpers import monotonic_ms, track_uri
from ..utils.logger import get_logger
from .clock import InterpolationClock
from .devices import DeviceResolver
from .player import InProcessPlayer
from .poller import RemoteStatePoller
from .state import PlaybackState
from .view import PlaybackView, StatusReporter

logger = get_logger(__name__)


class CommandPhase(Enum):
    """Lifecycle of one command class"""
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class CommandGuard:
    """
    Pending flag and minimum spacing for one command class

    Attributes:
        kind: Command class guarded
        spacing_ms: Minimum time between two recorded commands
        phase: Current phase
        outcome: Phase the last command settled in (COMMITTED or ROLLED_BACK)
        last_issued_at: Timestamp of the last recorded command, None before the first
    """

    def __init__(self, kind: CommandKind, spacing_ms: float = 500, clock: Callable[[], float] = monotonic_ms):
        self.kind = kind
        self.spacing_ms = spacing_ms
        self._clock = clock

        self.phase = CommandPhase.IDLE
        self.outcome: Optional[CommandPhase] = None
        self.last_issued_at: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self.phase is CommandPhase.PENDING

    def try_acquire(self) -> Optional[float]:
        """
        Enter the Pending phase if the command may run now

        Returns:
            Acceptance timestamp, None if the command must be dropped
        """
        if self.pending:
            return None
        now = self._clock()
        if self.last_issued_at is not None and now - self.last_issued_at < self.spacing_ms:
            return None
        self.phase = CommandPhase.PENDING
        return now

    def record(self, issued_at: float) -> None:
        self.last_issued_at = issued_at

    def commit(self) -> None:
        self.phase = self.outcome = CommandPhase.COMMITTED

    def roll_back(self) -> None:
        self.phase = self.outcome = CommandPhase.ROLLED_BACK

    def release(self) -> None:
        self.phase = CommandPhase.IDLE

    @contextmanager
    def hold(self) -> Iterator['CommandGuard']:
        """Keep the guard acquired for the block, releasing it however the block exits"""
        try:
            yield self
        finally:
            self.release()


class CommandDispatcher:
    """
    Issues transport commands with de-duplication and optimistic updates

    Args:
        api: Playback API client
        token_provider: Source of valid tokens, checked before any command runs
        state: Shared playback state
        clock: Interpolation clock
        view: View driven by optimistic updates
        reporter: Status surface for command failures
        resolver: Device resolver
        poller: Poller used for the supplementary poll after ``play_track``
        player: Optional in-process player
        spacing_ms: Minimum spacing per command class
        supplementary_poll_delay: Seconds after ``play_track`` submission to poll again
        time_source: Millisecond monotonic clock
    """

    def __init__(
        self,
        api: PlaybackAPI,
        token_provider: TokenProvider,
        state: PlaybackState,
        clock: InterpolationClock,
        view: PlaybackView,
        reporter: StatusReporter,
        resolver: DeviceResolver,
        poller: RemoteStatePoller,
        player: Optional[InProcessPlayer] = None,
        spacing_ms: float = 500,
        supplementary_poll_delay: float = 0.1,
        time_source: Callable[[], float] = monotonic_ms
    ):
        self.api = api
        self.token_provider = token_provider
        self.state = state
        self.clock = clock
        self.view = view
        self.reporter = reporter
        self.resolver = resolver
        self.poller = poller
        self.player = player
        self.supplementary_poll_delay = supplementary_poll_delay
        self._now = time_source

        self.guards: Dict[CommandKind, CommandGuard] = {
            kind: CommandGuard(kind, spacing_ms, time_source) for kind in CommandKind
        }

    async def _require_session(self) -> None:
        if not await self.token_provider.get_valid_token():
            raise NotAuthenticatedError()

    async def play_track(self, track_id: str) -> CommandResult:
        """
        Start playback of a specific track on the resolved device

        Args:
            track_id: Bare Spotify track id (a ``spotify:track:`` URI is also accepted)

        Returns:
            Command outcome
        """
        kind = CommandKind.PLAY_TRACK
        guard = self.guards[kind]

        accepted_at = guard.try_acquire()
        if accepted_at is None:
            logger.debug(f"play_track({track_id}) dropped by guard")
            return CommandResult.dropped(kind)
        guard.record(accepted_at)

        with guard.hold():
            try:
                await self._require_session()

                device_id = await self.resolver.resolve()
                if not device_id:
                    raise NoDeviceError()

                # Reflect the change well before the next regular poll
                self.poller.schedule_poll(self.supplementary_poll_delay)

                await self.api.start_track(device_id, track_uri(track_id))
            except DJCompanionError as e:
                guard.roll_back()
                logger.error(f"play_track({track_id}) failed: {e}")
                self.reporter.error(e)
                return CommandResult.failure(kind, e)

            guard.commit()
            logger.info(f"Started {track_id} on device {device_id}")
            return CommandResult.success(kind)

    async def toggle_play_pause(self) -> CommandResult:
        """
        Flip between play and pause for whatever is currently loaded

        Returns:
            Command outcome
        """
        kind = CommandKind.TOGGLE_PLAY_PAUSE
        guard = self.guards[kind]

        accepted_at = guard.try_acquire()
        if accepted_at is None:
            logger.debug("toggle_play_pause dropped by guard")
            return CommandResult.dropped(kind)

        with guard.hold():
            try:
                await self._require_session()
            except NotAuthenticatedError as e:
                guard.roll_back()
                self.reporter.error(e)
                return CommandResult.failure(kind, e)

            previous_paused = self.state.paused
            previous_snapshot = self.state.snapshot
            clock_was_active = self.clock.active

            should_play = previous_paused
            optimistic = self._apply_optimistic(paused=not should_play)

            try:
                if self.player is not None and self.player.connected and self.resolver.local_session:
                    await self._toggle_local()
                elif should_play:
                    await self.api.resume()
                else:
                    await self.api.pause()
            except DJCompanionError as e:
                self._roll_back(previous_paused, previous_snapshot, optimistic, clock_was_active)
                guard.roll_back()
                logger.error(f"toggle_play_pause ({'play' if should_play else 'pause'}) failed: {e}")
                self.reporter.error(e)
                return CommandResult.failure(kind, e)

            guard.record(accepted_at)
            guard.commit()
            return CommandResult.success(kind)

    async def _toggle_local(self) -> None:
        try:
            await self.player.toggle_play()
        except DJCompanionError:
            raise
        except Exception as e:
            raise CommandError(f"In-app player toggle failed: {e}", details={'player': self.player.name}) from e

    def _apply_optimistic(self, paused: bool) -> Optional[PlaybackSnapshot]:
        """Apply the expected outcome locally, returning the snapshot it installed"""
        self.state.paused = paused
        self.view.set_play_button(paused)

        snapshot = self.state.snapshot
        if paused:
            self.clock.stop()
            if snapshot is not None:
                self.state.snapshot = snapshot.frozen_at(self._now())
        elif snapshot is not None:
            self.state.snapshot = snapshot.resumed_at(self._now())
            self.clock.restart(self.state.snapshot)
        return self.state.snapshot

    def _roll_back(
        self,
        paused: bool,
        snapshot: Optional[PlaybackSnapshot],
        optimistic: Optional[PlaybackSnapshot],
        clock_was_active: bool
    ) -> None:
        self.state.paused = paused
        self.view.set_play_button(paused)

        # A poll that landed meanwhile is newer truth than the pre-command snapshot
        if self.state.snapshot is not optimistic:
            return

        self.state.snapshot = snapshot
        if clock_was_active and snapshot is not None and snapshot.is_playing:
            self.clock.restart(snapshot)
        else:
            self.clock.stop()
