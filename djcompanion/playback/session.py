"""
Playback session

``PlaybackSession`` is the single owned context of the playback engine. It
builds and wires the collaborators (state, event channel, interpolation
clock, poller, device resolver, status reporter and command dispatcher) and
gives them an explicit lifecycle:

    async with PlaybackSession(view=TerminalView()) as session:
        await session.play_track("4uLU6hMCjMI75M1A2tKUQC")
        await session.toggle_play_pause()

``start()`` connects the optional in-process player and starts polling.
``stop()`` is also the logout path: it halts all timers, disconnects the
player, forgets the in-process device, resets the playback belief and closes
the HTTP session.
"""

from typing import Callable, Optional

from ..config.auth import TokenProvider
from ..config.settings import Settings, get_settings
from ..spotify.client import PlaybackAPI
from ..spotify.models import CommandResult
from ..utils.exceptions import DJCompanionError
from ..utils.helpers import monotonic_ms
from ..utils.logger import get_logger
from .clock import InterpolationClock
from .commands import CommandDispatcher
from .devices import DeviceResolver
from .events import EventChannel
from .player import InProcessPlayer
from .poller import RemoteStatePoller
from .state import PlaybackState
from .view import PlaybackView, StatusReporter

PlayerFactory = Callable[[EventChannel], InProcessPlayer]


class PlaybackSession:
    """
    Owned playback engine context

    Args:
        view: UI callbacks, a no-op view by default
        settings: Settings to use, defaults to the global settings
        token_provider: Token source, built from the global auth by default
        api: Playback API client, built from the token provider by default
        library: Optional BPM lookup (``LibraryMirror``)
        player_factory: Builds the in-process player on the session's event channel
        time_source: Millisecond monotonic clock shared by all components
    """

    def __init__(
        self,
        view: Optional[PlaybackView] = None,
        settings: Optional[Settings] = None,
        token_provider: Optional[TokenProvider] = None,
        api: Optional[PlaybackAPI] = None,
        library=None,
        player_factory: Optional[PlayerFactory] = None,
        time_source: Callable[[], float] = monotonic_ms
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        playback = self.settings.playback

        self.view = view or PlaybackView()
        self.token_provider = token_provider or TokenProvider(refresh_margin=playback.token_refresh_margin)
        self.api = api or PlaybackAPI(self.token_provider, self.settings)
        self.library = library

        self.channel = EventChannel()
        self.state = PlaybackState(self.channel)
        self.reporter = StatusReporter(self.view, playback.status_clear_delay)
        self.clock = InterpolationClock(self.view, playback.progress_interval, time_source)
        self.poller = RemoteStatePoller(
            self.api, self.state, self.clock, self.view,
            library=library,
            interval=playback.poll_interval,
            time_source=time_source
        )
        self.resolver = DeviceResolver(self.api, self.channel, self.reporter)
        self.player = player_factory(self.channel) if player_factory else None
        self.dispatcher = CommandDispatcher(
            self.api, self.token_provider, self.state, self.clock, self.view,
            self.reporter, self.resolver, self.poller,
            player=self.player,
            spacing_ms=playback.command_spacing_ms,
            supplementary_poll_delay=playback.supplementary_poll_delay,
            time_source=time_source
        )

        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Connect the in-process player (if any) and start polling"""
        if self.player is not None:
            try:
                connected = await self.player.connect()
            except DJCompanionError as e:
                self.logger.warning(f"In-app player failed to connect: {e}")
                connected = False
            if not connected:
                self.logger.info("Continuing without the in-app player")

        self.poller.start()
        self._started = True
        self.logger.debug("Playback session started")

    async def stop(self) -> None:
        """Stop polling and reset everything the session learned (logout)"""
        self.poller.stop()
        self.clock.stop()

        if self.player is not None and self.player.connected:
            try:
                await self.player.disconnect()
            except DJCompanionError as e:
                self.logger.warning(f"In-app player failed to disconnect cleanly: {e}")

        self.resolver.forget()
        self.state.reset()
        self.view.clear_highlights()
        self.view.set_play_button(True)
        self.token_provider.clear()
        await self.api.close()

        self._started = False
        self.logger.debug("Playback session stopped")

    async def play_track(self, track_id: str) -> CommandResult:
        return await self.dispatcher.play_track(track_id)

    async def toggle_play_pause(self) -> CommandResult:
        return await self.dispatcher.toggle_play_pause()

    async def refresh(self) -> None:
        """Poll right away, outside the regular cadence"""
        await self.poller.poll_once()

    async def __aenter__(self) -> 'PlaybackSession':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
