"""
Playback engine package

Reconciles local transport intent with Spotify's polled playback state:

- ``session``   owned engine context with start/stop lifecycle
- ``poller``    authoritative snapshot every 2.5s
- ``clock``     250ms progress interpolation between polls
- ``commands``  guarded, optimistic play_track / toggle_play_pause
- ``devices``   output device resolution
- ``events``    push events from the in-process player
- ``view``      UI callbacks and the status surface
"""

from .clock import InterpolationClock
from .commands import CommandDispatcher, CommandGuard, CommandPhase
from .devices import DeviceResolver, pick_device
from .events import EventChannel, PlayerEvent, PlayerEventType
from .player import InProcessPlayer
from .poller import RemoteStatePoller
from .session import PlaybackSession
from .state import PlaybackState
from .view import PlaybackView, StatusReporter

__all__ = [
    'PlaybackSession',
    'RemoteStatePoller',
    'InterpolationClock',
    'CommandDispatcher',
    'CommandGuard',
    'CommandPhase',
    'DeviceResolver',
    'pick_device',
    'EventChannel',
    'PlayerEvent',
    'PlayerEventType',
    'InProcessPlayer',
    'PlaybackState',
    'PlaybackView',
    'StatusReporter'
]
