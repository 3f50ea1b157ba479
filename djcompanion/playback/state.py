"""
Shared playback state

Single owned record of what the engine believes about the remote player:
the latest authoritative snapshot, the last known track and the local
paused/playing belief that the toggle command reads and optimistically
mutates.
"""

from typing import Optional

from ..spotify.models import PlaybackSnapshot
from .events import EventChannel, PlayerEvent, PlayerEventType


class PlaybackState:
    """
    Playback belief shared by the poller, the clock and the dispatcher

    Attributes:
        snapshot: Latest authoritative snapshot, None before the first poll or after logout
        last_track_id: Track the engine believes is loaded
        paused: Local paused/playing belief (paused until told otherwise)
    """

    def __init__(self, channel: Optional[EventChannel] = None):
        self.snapshot: Optional[PlaybackSnapshot] = None
        self.last_track_id: Optional[str] = None
        self.paused: bool = True

        self._unsubscribe = None
        if channel is not None:
            self._unsubscribe = channel.subscribe(PlayerEventType.STATE_CHANGED, self._on_player_state)

    def apply_snapshot(self, snapshot: PlaybackSnapshot) -> None:
        """Replace the snapshot wholesale and re-derive the beliefs from it"""
        self.snapshot = snapshot
        self.last_track_id = snapshot.track_id
        self.paused = not snapshot.is_playing

    def reset(self) -> None:
        self.snapshot = None
        self.last_track_id = None
        self.paused = True

    def _on_player_state(self, event: PlayerEvent) -> None:
        # Supplements the poll, the next snapshot still wins
        self.last_track_id = event.track_id
        if event.paused is not None:
            self.paused = event.paused

    def detach(self) -> None:
        """Stop listening to the event channel"""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
