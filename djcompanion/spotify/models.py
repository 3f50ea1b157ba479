"""
Data models for Spotify playback state, devices and command outcomes

This module defines the small set of data structures exchanged between the
Spotify client and the playback engine:

1. **PlaybackSnapshot**: the authoritative player state returned by a poll,
   stamped with the local monotonic time at which it was obtained. Snapshots
   are immutable and replaced wholesale on every successful poll; the
   interpolation clock derives estimated positions from the latest one.

2. **Device**: a playback endpoint registered with Spotify (desktop app,
   phone, speaker or the in-process player).

3. **CommandKind / CommandResult**: transport command classes and the explicit
   outcome every command resolves to, so that no failure escapes into the UI
   event loop as an unhandled exception.

Design Patterns Implemented:

- **Data Transfer Object (DTO)**: Models serve as DTOs for API response data
- **Factory Method**: ``from_spotify_data()`` methods for safe construction from external data
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.exceptions import DJCompanionError, ErrorKind, SpotifyAPIError


class CommandKind(Enum):
    """Transport command classes, each throttled independently"""
    PLAY_TRACK = "play_track"
    TOGGLE_PLAY_PAUSE = "toggle_play_pause"


@dataclass(frozen=True)
class PlaybackSnapshot:
    """
    Authoritative playback state at a point in time

    Attributes:
        track_id: Spotify ID of the loaded track, None if nothing is loaded
        is_playing: Whether the remote player is playing
        position_ms: Last known offset into the track
        duration_ms: Track duration
        sampled_at: Local monotonic time (ms) when the snapshot was obtained
        track_name: Display name of the track
        artists: Display names of the track artists
    """
    track_id: Optional[str]
    is_playing: bool
    position_ms: int
    duration_ms: int
    sampled_at: float
    track_name: str = ""
    artists: List[str] = field(default_factory=list)

    @classmethod
    def from_spotify_data(cls, data: Optional[Dict[str, Any]], sampled_at: float) -> Optional['PlaybackSnapshot']:
        """
        Create a snapshot from a ``GET /me/player`` response

        Args:
            data: Decoded response body, None for an empty (204) response
            sampled_at: Local monotonic time (ms) of the response

        Returns:
            PlaybackSnapshot, or None when nothing is currently loaded

        Raises:
            SpotifyAPIError: (transient) when the payload has an unexpected shape
        """
        if not data:
            return None

        try:
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            item = data.get('item')
            if not item:
                return None
            return cls(
                track_id=item.get('id'),
                is_playing=bool(data.get('is_playing', False)),
                position_ms=max(0, int(data.get('progress_ms') or 0)),
                duration_ms=max(0, int(item.get('duration_ms') or 0)),
                sampled_at=sampled_at,
                track_name=item.get('name', ''),
                artists=[a.get('name', '') for a in item.get('artists') or []],
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise SpotifyAPIError(
                f"Failed to parse playback state: {e}",
                details={'payload_keys': sorted(data) if isinstance(data, dict) else None},
                kind=ErrorKind.TRANSIENT
            )

    @property
    def artist_names(self) -> str:
        """Comma separated artist names for display"""
        return ", ".join(a for a in self.artists if a)

    def raw_position(self, now: float) -> float:
        """
        Unclamped position estimate at local time ``now``

        While playing, the position advances with wall-clock time since the
        sample; while paused it stays at ``position_ms``.
        """
        if not self.is_playing:
            return float(self.position_ms)
        return self.position_ms + max(0.0, now - self.sampled_at)

    def estimate_position(self, now: float) -> int:
        """Position estimate at local time ``now``, clamped to ``[0, duration_ms]``"""
        return int(max(0.0, min(self.raw_position(now), float(self.duration_ms))))

    def frozen_at(self, now: float) -> 'PlaybackSnapshot':
        """Copy rebased to ``now`` and marked paused, keeping the estimated position"""
        return replace(self, is_playing=False, position_ms=self.estimate_position(now), sampled_at=now)

    def resumed_at(self, now: float) -> 'PlaybackSnapshot':
        """Copy rebased to ``now`` and marked playing from the estimated position"""
        return replace(self, is_playing=True, position_ms=self.estimate_position(now), sampled_at=now)


@dataclass
class Device:
    """
    Spotify Connect playback device

    Attributes:
        id: Device ID used with ``?device_id=`` on player commands
        name: Human readable device name
        type: Device type (Computer, Smartphone, Speaker, ...)
        is_active: True if Spotify reports this as the currently active device
        volume_percent: Current device volume, None if not reported
    """
    id: Optional[str]
    name: str = ""
    type: str = ""
    is_active: bool = False
    volume_percent: Optional[int] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'Device':
        """Create a Device from one entry of ``GET /me/player/devices``"""
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            type=data.get('type', ''),
            is_active=bool(data.get('is_active', False)),
            volume_percent=data.get('volume_percent'),
        )


@dataclass(frozen=True)
class CommandResult:
    """
    Explicit outcome of a transport command

    Attributes:
        kind: Which command class produced the result
        ok: True if the command was issued and confirmed by the remote
        rejected: True if the command was dropped by the pending/spacing guard
        error: Failure that was reported to the user, if any
    """
    kind: CommandKind
    ok: bool = False
    rejected: bool = False
    error: Optional[DJCompanionError] = None

    @classmethod
    def success(cls, kind: CommandKind) -> 'CommandResult':
        return cls(kind=kind, ok=True)

    @classmethod
    def dropped(cls, kind: CommandKind) -> 'CommandResult':
        return cls(kind=kind, rejected=True)

    @classmethod
    def failure(cls, kind: CommandKind, error: DJCompanionError) -> 'CommandResult':
        return cls(kind=kind, error=error)
