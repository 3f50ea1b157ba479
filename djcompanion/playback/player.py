"""
In-process player adapter

Audio decoding is delegated to a vendor player that registers itself with
Spotify as a Connect device. This module defines the adapter interface the
playback engine relies on: a connect/disconnect lifecycle, a ``toggle_play``
transport shortcut, and push events published on the engine's
``EventChannel``.

Concrete adapters translate their SDK callbacks into ``emit()`` calls, for
example::

    class LibrespotPlayer(InProcessPlayer):
        async def connect(self):
            ...
            self.emit(PlayerEventType.READY, device_id=device_id)
"""

from abc import ABC, abstractmethod
from typing import Optional

from .events import EventChannel, PlayerEvent, PlayerEventType
from ..utils.logger import get_logger

# SDK error events are only worth a warning in the log
_ERROR_EVENT_MESSAGES = {
    PlayerEventType.INITIALIZATION_ERROR: "SDK init",
    PlayerEventType.AUTHENTICATION_ERROR: "SDK auth",
    PlayerEventType.ACCOUNT_ERROR: "SDK account",
}


class InProcessPlayer(ABC):
    """
    Abstract in-process playback session

    Attributes:
        channel: Event channel the player publishes to
        name: Device name shown in Spotify Connect
    """

    def __init__(self, channel: EventChannel, name: str = "Swing DJ Companion"):
        self.channel = channel
        self.name = name
        self.logger = get_logger(__name__)
        self._connected = False

    @property
    def connected(self) -> bool:
        """True between a successful ``connect()`` and ``disconnect()``"""
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """Connect to Spotify; READY is published once the device is registered"""

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect and release the device"""

    @abstractmethod
    async def toggle_play(self) -> None:
        """Toggle play/pause locally without a Web API round trip"""

    def emit(
        self,
        event_type: PlayerEventType,
        device_id: Optional[str] = None,
        track_id: Optional[str] = None,
        paused: Optional[bool] = None,
        message: str = ""
    ) -> None:
        """Publish a push event from the underlying SDK"""
        if event_type in _ERROR_EVENT_MESSAGES:
            if event_type is PlayerEventType.ACCOUNT_ERROR and not message:
                message = "Premium required for in-app audio"
            self.logger.warning(f"{_ERROR_EVENT_MESSAGES[event_type]}: {message}")

        self.channel.publish(PlayerEvent(
            type=event_type,
            device_id=device_id,
            track_id=track_id,
            paused=paused,
            message=message
        ))
