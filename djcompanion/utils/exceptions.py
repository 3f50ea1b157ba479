"""
Exception classes for DJ-Companion.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message, an optional ``details``
dictionary for logging, and a structured ``ErrorKind`` that tells the user
surfaces how to treat the failure.

The kind is decided once, where the error value is built (usually the Spotify
client, which has the HTTP status and the error payload at hand). Everything
downstream inspects ``error.kind`` instead of matching on message text.

Exception Hierarchy:
    DJCompanionError (base)
        ConfigError - Configuration file issues
        LibraryError - DJ library store issues
        SpotifyAPIError - Spotify Web API issues
            NotAuthenticatedError - No valid session/token
        NoDeviceError - No playback device could be resolved
        CommandError - A transport command failed outside the Web API
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Structured classification of failures"""
    AUTH = "auth"              # No valid session or token rejected
    TRANSIENT = "transient"    # Benign remote hiccup, logged only
    DEVICE = "device"          # No device available to receive commands
    COMMAND = "command"        # Remote rejected a transport command
    NETWORK = "network"        # Connection failure, timeout, throttling, 5xx
    CONFIG = "config"          # Invalid or missing configuration
    LIBRARY = "library"        # DJ library store failure


class DJCompanionError(Exception):
    """
    Base exception for all DJ-Companion errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all application errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., status code, path).
        kind: Structured classification used by the status surface.

    Example:
        try:
            await api.pause()
        except DJCompanionError as e:
            if not e.is_transient:
                reporter.error(e)
    """

    default_kind = ErrorKind.COMMAND

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that may be shown to the user.
            details: Optional dictionary containing additional context about the error.
            kind: Error classification, defaults to the class' ``default_kind``.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.kind = kind or self.default_kind

    @property
    def is_transient(self) -> bool:
        """True if the error is a known-benign hiccup that should not alarm the user"""
        return self.kind is ErrorKind.TRANSIENT

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(DJCompanionError):
    """
    Raised when there's an issue with the configuration.

    Common causes:
        - config.yaml has invalid YAML syntax
        - Spotify client credentials missing
        - Invalid field values (e.g., negative poll interval)
    """

    default_kind = ErrorKind.CONFIG


class LibraryError(DJCompanionError):
    """
    Raised when the DJ library store cannot be read or modified.

    Common causes:
        - Track already present in the library
        - Input is not a Spotify track link or URI
        - Permission denied when writing tracks.json
    """

    default_kind = ErrorKind.LIBRARY


class SpotifyAPIError(DJCompanionError):
    """
    Raised when a Spotify Web API call fails.

    Attributes:
        status: HTTP status code, None for connection-level failures.
        reason: Spotify player error reason code when the body carried one
                (e.g. ``NO_ACTIVE_DEVICE``, ``ALREADY_PAUSED``).

    Example:
        raise SpotifyAPIError(
            "Player command failed: Premium required",
            details={'path': '/me/player/play'},
            status=403,
            reason='PREMIUM_REQUIRED'
        )
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
        status: Optional[int] = None,
        reason: Optional[str] = None
    ) -> None:
        super().__init__(message, details=details, kind=kind)
        self.status = status
        self.reason = reason


class NotAuthenticatedError(SpotifyAPIError):
    """
    Raised when no valid access token is available.

    Silently ignored by the poller (expected while logged out), surfaced to
    the user when a transport command is attempted.
    """

    default_kind = ErrorKind.AUTH

    def __init__(self, message: str = "Not authenticated", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details, kind=ErrorKind.AUTH, status=401)


class NoDeviceError(DJCompanionError):
    """Raised when no playback device could be resolved for a play command"""

    default_kind = ErrorKind.DEVICE

    def __init__(
        self,
        message: str = "No active Spotify device found. Open the Spotify app first.",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, details=details)


class CommandError(DJCompanionError):
    """
    Raised when a transport command fails outside the Web API.

    Used to wrap unexpected failures of the in-process player so they
    resolve to an explicit command result like any API failure.
    """

    default_kind = ErrorKind.COMMAND
