"""
View callbacks and the user-facing status surface

The playback engine never renders anything itself. It drives a
``PlaybackView`` (implemented by the terminal UI, or by a recording view in
tests) and reports user-visible messages through a ``StatusReporter``.

The reporter implements the error display policy:

- errors classified as TRANSIENT are logged and never shown, unless forced
- every other error is shown and stays until replaced
- info/ok messages clear themselves after ``status_clear_delay`` seconds if
  nothing else has been shown in the meantime
"""

import asyncio
from typing import Optional, Union

from ..spotify.models import PlaybackSnapshot
from ..utils.exceptions import DJCompanionError
from ..utils.logger import get_logger

logger = get_logger(__name__)

STATUS_INFO = "info"
STATUS_OK = "ok"
STATUS_ERROR = "error"


class PlaybackView:
    """Render/update callbacks driven by the playback engine; no-ops by default"""

    def show_now_playing(self, snapshot: PlaybackSnapshot, bpm: Optional[int]) -> None:
        pass

    def show_progress(self, position_ms: int, duration_ms: int) -> None:
        pass

    def set_play_button(self, paused: bool) -> None:
        pass

    def highlight_track(self, track_id: Optional[str], is_playing: bool) -> None:
        pass

    def clear_highlights(self) -> None:
        pass

    def show_status(self, message: str, level: str) -> None:
        pass

    def clear_status(self) -> None:
        pass


class StatusReporter:
    """
    User-facing status messages with transient error suppression

    Args:
        view: View receiving ``show_status`` / ``clear_status``
        clear_delay: Seconds after which non-error messages clear themselves
    """

    def __init__(self, view: PlaybackView, clear_delay: float = 3.5):
        self.view = view
        self.clear_delay = clear_delay
        self.current: Optional[str] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    def info(self, message: str) -> None:
        self._show(message, STATUS_INFO)

    def ok(self, message: str) -> None:
        self._show(message, STATUS_OK)

    def error(self, error: Union[str, DJCompanionError], force: bool = False) -> bool:
        """
        Report an error to the user

        Args:
            error: Error value or plain message
            force: Show the message even if the error is transient

        Returns:
            True if the message was shown, False if it was suppressed
        """
        if isinstance(error, DJCompanionError) and error.is_transient and not force:
            logger.warning(f"Transient error (logged only): {error}")
            return False

        message = str(error) or "Playback failed"
        logger.error(f"Status error: {message}")
        self._show(message, STATUS_ERROR)
        return True

    def clear(self) -> None:
        self._cancel_pending_clear()
        self.current = None
        self.view.clear_status()

    def _show(self, message: str, level: str) -> None:
        self._cancel_pending_clear()
        self.current = message
        self.view.show_status(message, level)

        if message and level != STATUS_ERROR and self.clear_delay > 0:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Outside the event loop (one-shot CLI commands) nothing needs clearing
                return
            self._clear_handle = loop.call_later(self.clear_delay, self._clear_if_current, message)

    def _clear_if_current(self, message: str) -> None:
        self._clear_handle = None
        if self.current == message:
            self.current = None
            self.view.clear_status()

    def _cancel_pending_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None
