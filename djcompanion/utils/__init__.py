# djcompanion/utils/__init__.py
"""
Utilities package
Logging, exceptions and helper functions
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    get_current_log_file
)
from .helpers import (
    monotonic_ms,
    format_duration,
    format_ms,
    format_ms_remaining,
    progress_percent,
    extract_spotify_uri,
    track_id_from_uri,
    track_uri,
    get_current_timestamp
)
from .exceptions import (
    ErrorKind,
    DJCompanionError,
    ConfigError,
    LibraryError,
    SpotifyAPIError,
    NotAuthenticatedError,
    NoDeviceError,
    CommandError
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'get_current_log_file',

    # Helper exports
    'monotonic_ms',
    'format_duration',
    'format_ms',
    'format_ms_remaining',
    'progress_percent',
    'extract_spotify_uri',
    'track_id_from_uri',
    'track_uri',
    'get_current_timestamp',

    # Exception exports
    'ErrorKind',
    'DJCompanionError',
    'ConfigError',
    'LibraryError',
    'SpotifyAPIError',
    'NotAuthenticatedError',
    'NoDeviceError',
    'CommandError'
]
