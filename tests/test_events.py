"""Test the player event channel, shared state and status reporting"""

import asyncio
from unittest.mock import Mock

import pytest

from djcompanion.playback.events import EventChannel, PlayerEvent, PlayerEventType
from djcompanion.playback.state import PlaybackState
from djcompanion.playback.view import StatusReporter
from djcompanion.spotify.models import PlaybackSnapshot
from djcompanion.utils.exceptions import ErrorKind, NoDeviceError, SpotifyAPIError

from conftest import FakePlayer


class TestEventChannel:
    """Test publish/subscribe delivery"""

    def test_delivers_by_type(self):
        channel = EventChannel()
        ready, not_ready = Mock(), Mock()
        channel.subscribe(PlayerEventType.READY, ready)
        channel.subscribe(PlayerEventType.NOT_READY, not_ready)

        event = PlayerEvent(PlayerEventType.READY, device_id="sdk-1")
        channel.publish(event)

        ready.assert_called_once_with(event)
        not_ready.assert_not_called()

    def test_unsubscribe(self):
        channel = EventChannel()
        handler = Mock()
        unsubscribe = channel.subscribe(PlayerEventType.READY, handler)

        unsubscribe()
        unsubscribe()
        channel.publish(PlayerEvent(PlayerEventType.READY))

        handler.assert_not_called()
        assert channel.subscriber_count(PlayerEventType.READY) == 0

    def test_failing_handler_does_not_stop_delivery(self, caplog):
        channel = EventChannel()
        after = Mock()
        channel.subscribe(PlayerEventType.READY, Mock(side_effect=ValueError("bad handler")))
        channel.subscribe(PlayerEventType.READY, after)

        channel.publish(PlayerEvent(PlayerEventType.READY))

        after.assert_called_once()
        assert any("handler failed" in r.getMessage() for r in caplog.records)


class TestInProcessPlayer:
    """Test the player adapter's event emission"""

    def test_error_events_are_logged(self, caplog):
        channel = EventChannel()
        received = Mock()
        channel.subscribe(PlayerEventType.ACCOUNT_ERROR, received)
        player = FakePlayer(channel)

        player.emit(PlayerEventType.ACCOUNT_ERROR)

        event = received.call_args.args[0]
        assert event.message == "Premium required for in-app audio"
        assert any(r.levelname == "WARNING" and "SDK account" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        channel = EventChannel()
        player = FakePlayer(channel)
        assert not player.connected

        await player.connect()
        assert player.connected

        await player.disconnect()
        assert not player.connected


class TestPlaybackState:
    """Test the shared playback belief"""

    def test_defaults_to_paused(self):
        state = PlaybackState()
        assert state.paused is True
        assert state.snapshot is None
        assert state.last_track_id is None

    def test_apply_snapshot(self):
        state = PlaybackState()
        state.apply_snapshot(PlaybackSnapshot("abc", True, 0, 1000, sampled_at=0.0))

        assert state.paused is False
        assert state.last_track_id == "abc"

    def test_player_state_events_supplement_poll(self):
        channel = EventChannel()
        state = PlaybackState(channel)

        channel.publish(PlayerEvent(PlayerEventType.STATE_CHANGED, track_id="xyz", paused=False))

        assert state.last_track_id == "xyz"
        assert state.paused is False

        state.detach()
        channel.publish(PlayerEvent(PlayerEventType.STATE_CHANGED, track_id="other", paused=True))
        assert state.last_track_id == "xyz"

    def test_reset(self):
        state = PlaybackState()
        state.apply_snapshot(PlaybackSnapshot("abc", True, 0, 1000, sampled_at=0.0))

        state.reset()

        assert state.paused is True
        assert state.snapshot is None
        assert state.last_track_id is None


class TestStatusReporter:
    """Test user-facing status messages"""

    def test_errors_are_shown(self, view):
        reporter = StatusReporter(view)

        assert reporter.error(NoDeviceError())
        assert view.statuses == [("No active Spotify device found. Open the Spotify app first.", "error")]

    def test_transient_errors_are_suppressed(self, view, caplog):
        reporter = StatusReporter(view)
        error = SpotifyAPIError("Spotify error 502: empty response", kind=ErrorKind.TRANSIENT)

        assert not reporter.error(error)
        assert view.statuses == []
        assert any("Transient error" in r.getMessage() for r in caplog.records)

        assert reporter.error(error, force=True)
        assert view.statuses == [("Spotify error 502: empty response", "error")]

    def test_plain_message(self, view):
        reporter = StatusReporter(view)
        reporter.error("Playback failed")
        assert view.statuses[-1] == ("Playback failed", "error")

    @pytest.mark.asyncio
    async def test_info_clears_itself(self, view):
        reporter = StatusReporter(view, clear_delay=0.01)

        reporter.ok("In-app player ready")
        await asyncio.sleep(0.05)

        assert reporter.current is None
        assert view.status_cleared == 1

    @pytest.mark.asyncio
    async def test_errors_stay(self, view):
        reporter = StatusReporter(view, clear_delay=0.01)

        reporter.error(NoDeviceError())
        await asyncio.sleep(0.05)

        assert reporter.current is not None
        assert view.status_cleared == 0

    @pytest.mark.asyncio
    async def test_newer_message_is_not_cleared(self, view):
        reporter = StatusReporter(view, clear_delay=0.02)

        reporter.info("Opening Spotify login...")
        reporter.error("Login failed")
        await asyncio.sleep(0.05)

        assert reporter.current == "Login failed"
        assert view.status_cleared == 0
