"""
Helper utilities for DJ-Companion
Time formatting for the progress display, Spotify URI parsing and clocks
"""

import re
import time
from datetime import datetime
from typing import Optional, Union


SPOTIFY_TRACK_URI_RE = re.compile(r'^spotify:track:([A-Za-z0-9]+)$')
SPOTIFY_TRACK_URL_RE = re.compile(r'open\.spotify\.com/(?:intl-[a-z-]+/)?track/([A-Za-z0-9]+)')


def monotonic_ms() -> float:
    """Milliseconds from a monotonic clock, used for sampling and throttling"""
    return time.monotonic() * 1000.0


def format_duration(seconds: Union[int, float, None]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string, ``--:--`` when unknown
    """
    if not seconds:
        return "--:--" if seconds is None else "0:00"
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_ms(ms: Union[int, float, None]) -> str:
    """Format a millisecond offset as m:ss"""
    return format_duration(int((ms or 0) // 1000))


def format_ms_remaining(position_ms: Union[int, float], duration_ms: Union[int, float]) -> str:
    """
    Format the remaining time of a track as ``-m:ss``

    Args:
        position_ms: Current offset into the track
        duration_ms: Track duration

    Returns:
        Remaining time string, empty when the duration is unknown
    """
    if not duration_ms:
        return ""
    remaining = max(0, duration_ms - position_ms)
    return f"-{format_ms(remaining)}"


def progress_percent(position_ms: Union[int, float], duration_ms: Union[int, float]) -> float:
    """Progress as a percentage in [0, 100]"""
    if not duration_ms:
        return 0.0
    return max(0.0, min(100.0, (position_ms / duration_ms) * 100))


def extract_spotify_uri(text: Optional[str]) -> Optional[str]:
    """
    Normalize a Spotify track link or URI to ``spotify:track:<id>``

    Accepts ``spotify:track:<id>`` and ``https://open.spotify.com/track/<id>``
    links (query strings such as ``?si=...`` are ignored).

    Args:
        text: User input

    Returns:
        Track URI or None when the input is not a track reference
    """
    if not text:
        return None
    text = text.strip()
    if SPOTIFY_TRACK_URI_RE.match(text):
        return text
    match = SPOTIFY_TRACK_URL_RE.search(text)
    if match:
        return f"spotify:track:{match.group(1)}"
    return None


def track_id_from_uri(uri: str) -> str:
    """Extract the bare track id from a ``spotify:track:<id>`` URI"""
    return uri.rsplit(':', 1)[-1]


def track_uri(track_id: str) -> str:
    """Build a ``spotify:track:<id>`` URI from a bare track id"""
    return track_id if track_id.startswith('spotify:track:') else f"spotify:track:{track_id}"


def get_current_timestamp() -> str:
    """Get current timestamp in ISO format"""
    return datetime.now().isoformat()
