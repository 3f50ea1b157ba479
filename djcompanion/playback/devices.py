"""
Playback device resolution

Decides which Spotify Connect device receives a play command. The
in-process player wins whenever it has announced itself as ready; otherwise
the device list is fetched and the device Spotify flags as active is used,
falling back to the first listed device.
"""

from typing import List, Optional

from ..spotify.client import PlaybackAPI
from ..spotify.models import Device
from ..utils.exceptions import DJCompanionError
from ..utils.logger import get_logger
from .events import EventChannel, PlayerEvent, PlayerEventType
from .view import StatusReporter

logger = get_logger(__name__)


def pick_device(devices: List[Device]) -> Optional[str]:
    """
    Pick the target device from a device list

    Args:
        devices: Devices as reported by Spotify

    Returns:
        ID of the active device, else of the first device, None when no device
        can be addressed
    """
    # Restricted devices are reported with a null id
    addressable = [device for device in devices if device.id]
    for device in addressable:
        if device.is_active:
            return device.id
    return addressable[0].id if addressable else None


class DeviceResolver:
    """
    Resolves the output device for play commands

    Tracks the in-process player's device id through READY / NOT_READY
    events on the channel.

    Attributes:
        sdk_device_id: Device id of the connected in-process player, if any
    """

    def __init__(
        self,
        api: PlaybackAPI,
        channel: Optional[EventChannel] = None,
        reporter: Optional[StatusReporter] = None
    ):
        self.api = api
        self.reporter = reporter
        self.sdk_device_id: Optional[str] = None

        if channel is not None:
            channel.subscribe(PlayerEventType.READY, self._on_ready)
            channel.subscribe(PlayerEventType.NOT_READY, self._on_not_ready)

    @property
    def local_session(self) -> bool:
        """True if an in-process player session is connected and ready"""
        return self.sdk_device_id is not None

    async def resolve(self) -> Optional[str]:
        """
        Resolve the target device

        Discovery failures are logged and treated like an empty device list.

        Returns:
            Device id, None if no device was found
        """
        if self.sdk_device_id:
            return self.sdk_device_id

        try:
            devices = await self.api.get_devices()
        except DJCompanionError as e:
            logger.error(f"Device discovery failed: {e}")
            return None

        device_id = pick_device(devices)
        logger.debug(f"Resolved device {device_id} from {len(devices)} candidates")
        return device_id

    def forget(self) -> None:
        self.sdk_device_id = None

    def _on_ready(self, event: PlayerEvent) -> None:
        self.sdk_device_id = event.device_id
        logger.info(f"In-app player ready as device {event.device_id}")
        if self.reporter is not None:
            self.reporter.ok("In-app player ready")

    def _on_not_ready(self, event: PlayerEvent) -> None:
        logger.info("In-app player went offline")
        self.sdk_device_id = None
