"""
Terminal renderer for the playback engine

Implements ``PlaybackView`` on a plain terminal: the now-playing line, BPM
and status messages are printed with ``click.style`` above a live ``tqdm``
progress bar, which shows the elapsed time on the left and the remaining
time on the right.

Lines are written with ``tqdm.write`` so they never tear the bar.
"""

from typing import Optional, TextIO

import click
from tqdm import tqdm

from ..playback.view import STATUS_ERROR, STATUS_OK, PlaybackView
from ..spotify.models import PlaybackSnapshot
from ..utils.helpers import format_ms, format_ms_remaining, progress_percent

PLAY_ICON = "▶"
PAUSE_ICON = "⏸"

_STATUS_COLORS = {
    STATUS_OK: 'green',
    STATUS_ERROR: 'red',
}


class TerminalView(PlaybackView):
    """
    ``PlaybackView`` rendering to the terminal

    Args:
        file: Output stream, stdout when None
        disable_bar: Do not draw the progress bar (non-interactive output)
    """

    def __init__(self, file: Optional[TextIO] = None, disable_bar: bool = False):
        self.file = file
        self.disable_bar = disable_bar
        self.paused = True
        self.highlighted_track_id: Optional[str] = None
        self._now_playing_key = None
        self._bar: Optional[tqdm] = None

    def _ensure_bar(self) -> tqdm:
        if self._bar is None:
            self._bar = tqdm(
                total=100,
                file=self.file,
                disable=self.disable_bar,
                leave=False,
                dynamic_ncols=True,
                bar_format="{desc} |{bar}| {postfix}"
            )
        return self._bar

    def _write(self, line: str) -> None:
        tqdm.write(line, file=self.file)

    def show_now_playing(self, snapshot: PlaybackSnapshot, bpm: Optional[int]) -> None:
        key = (snapshot.track_id, bpm)
        if key == self._now_playing_key:
            return
        self._now_playing_key = key

        line = click.style(snapshot.track_name or snapshot.track_id or "Unknown track", bold=True)
        if snapshot.artist_names:
            line += click.style(f"  {snapshot.artist_names}", fg='bright_black')
        if bpm:
            line += click.style(f"  {bpm} BPM", fg='cyan', bold=True)
        self._write(line)

    def show_progress(self, position_ms: int, duration_ms: int) -> None:
        bar = self._ensure_bar()
        icon = PLAY_ICON if self.paused else PAUSE_ICON
        bar.n = progress_percent(position_ms, duration_ms)
        bar.set_description_str(f"{icon} {format_ms(position_ms)}", refresh=False)
        bar.set_postfix_str(format_ms_remaining(position_ms, duration_ms), refresh=False)
        bar.refresh()

    def set_play_button(self, paused: bool) -> None:
        self.paused = paused
        if self._bar is not None:
            icon = PLAY_ICON if paused else PAUSE_ICON
            position = self._bar.desc.split(" ", 1)[-1] if self._bar.desc else ""
            self._bar.set_description_str(f"{icon} {position}")

    def highlight_track(self, track_id: Optional[str], is_playing: bool) -> None:
        self.highlighted_track_id = track_id

    def clear_highlights(self) -> None:
        self.highlighted_track_id = None
        self._now_playing_key = None

    def show_status(self, message: str, level: str) -> None:
        if not message:
            return
        color = _STATUS_COLORS.get(level)
        self._write(click.style(message, fg=color) if color else message)

    def clear_status(self) -> None:
        # Status lines scroll away with the output, nothing to erase
        pass

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
