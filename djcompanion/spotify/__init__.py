"""
Spotify integration package
Async Web API client for the player endpoints and the playback data models
"""

from .client import PlaybackAPI, classify_error
from .models import PlaybackSnapshot, Device, CommandKind, CommandResult

__all__ = [
    'PlaybackAPI',
    'classify_error',
    'PlaybackSnapshot',
    'Device',
    'CommandKind',
    'CommandResult'
]
