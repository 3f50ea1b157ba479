"""
In-process player event channel

The in-process player pushes events (ready, not ready, state changes, SDK
errors) while the rest of the engine is driven by polling. The channel
decouples the two: the player publishes, and the device resolver and the
shared playback state subscribe to the event types they care about.

Delivery is synchronous and in subscription order. A handler that raises is
logged and does not prevent delivery to the remaining handlers.
"""

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


class PlayerEventType(Enum):
    """Events emitted by the in-process player"""
    READY = "ready"
    NOT_READY = "not_ready"
    STATE_CHANGED = "player_state_changed"
    INITIALIZATION_ERROR = "initialization_error"
    AUTHENTICATION_ERROR = "authentication_error"
    ACCOUNT_ERROR = "account_error"


@dataclass(frozen=True)
class PlayerEvent:
    """
    A single push event from the in-process player

    Attributes:
        type: Event type
        device_id: Device ID of the player (READY)
        track_id: Current track (STATE_CHANGED), None when nothing is loaded
        paused: Whether the player is paused (STATE_CHANGED)
        message: Error description (error events)
    """
    type: PlayerEventType
    device_id: Optional[str] = None
    track_id: Optional[str] = None
    paused: Optional[bool] = None
    message: str = ""


EventHandler = Callable[[PlayerEvent], None]


class EventChannel:
    """Synchronous publish/subscribe channel for player events"""

    def __init__(self):
        self._handlers: Dict[PlayerEventType, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: PlayerEventType, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler for one event type

        Args:
            event_type: Event type to listen for
            handler: Callable receiving the event

        Returns:
            Function that removes the subscription again
        """
        self._handlers[event_type].append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: PlayerEventType, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: PlayerEvent) -> None:
        """Deliver an event to every handler subscribed to its type"""
        for handler in list(self._handlers.get(event.type, [])):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Player event handler failed for {event.type.value}")

    def subscriber_count(self, event_type: PlayerEventType) -> int:
        return len(self._handlers.get(event_type, []))
