"""Test the remote state poller"""

import asyncio
from unittest.mock import Mock

import pytest

from djcompanion.utils.exceptions import ErrorKind, NotAuthenticatedError, SpotifyAPIError


class TestRemoteStatePoller:
    """Test snapshot application and poll failure handling"""

    @pytest.mark.asyncio
    async def test_snapshot_is_applied(self, engine, api, view, fake_clock, make_payload):
        """Test a successful poll updates state, view and clock"""
        api.get_playback_state.return_value = make_payload(progress_ms=5000, is_playing=True)

        snapshot = await engine.poller.poll_once()

        assert snapshot.sampled_at == fake_clock()
        assert engine.state.snapshot is snapshot
        assert engine.state.last_track_id == "abc"
        assert engine.state.paused is False
        assert view.highlights[-1] == ("abc", True)
        assert view.now_playing[-1] == ("Shiny Stockings", "Count Basie", None)
        assert view.progress[-1] == (5000, 200000)
        assert view.play_button[-1] is False
        assert engine.clock.active
        engine.clock.stop()

    @pytest.mark.asyncio
    async def test_bpm_from_library_mirror(self, engine, api, view, make_payload):
        """Test the BPM shown comes from the library mirror"""
        engine.poller.library = Mock()
        engine.poller.library.bpm_for.return_value = 124
        api.get_playback_state.return_value = make_payload()

        await engine.poller.poll_once()

        engine.poller.library.bpm_for.assert_called_once_with("abc")
        assert view.now_playing[-1][2] == 124
        engine.clock.stop()

    @pytest.mark.asyncio
    async def test_paused_snapshot_stops_clock(self, engine, api, view, make_payload):
        api.get_playback_state.return_value = make_payload(is_playing=True)
        await engine.poller.poll_once()
        assert engine.clock.active

        api.get_playback_state.return_value = make_payload(is_playing=False)
        await engine.poller.poll_once()

        assert not engine.clock.active
        assert engine.state.paused is True
        assert view.play_button[-1] is True

    @pytest.mark.asyncio
    async def test_idle_response_keeps_now_playing(self, engine, api, view, make_payload):
        """Test an empty poll only halts the animation"""
        api.get_playback_state.return_value = make_payload(is_playing=True)
        await engine.poller.poll_once()
        rendered = list(view.now_playing)
        highlights = list(view.highlights)

        api.get_playback_state.return_value = None
        result = await engine.poller.poll_once()

        assert result is None
        assert not engine.clock.active
        assert view.now_playing == rendered
        assert view.highlights == highlights
        assert view.highlights_cleared == 0
        assert engine.state.last_track_id == "abc"

    @pytest.mark.asyncio
    async def test_not_authenticated_is_silent(self, engine, api, view, caplog):
        api.get_playback_state.side_effect = NotAuthenticatedError()

        assert await engine.poller.poll_once() is None

        assert view.statuses == []
        assert not [r for r in caplog.records if r.levelname == 'WARNING']

    @pytest.mark.asyncio
    async def test_transient_errors_are_logged_only(self, engine, api, view, make_payload, caplog):
        """Test poll failures are logged and the next tick recovers"""
        api.get_playback_state.side_effect = SpotifyAPIError(
            "Failed to parse Spotify response", kind=ErrorKind.TRANSIENT
        )

        assert await engine.poller.poll_once() is None
        assert view.statuses == []
        assert any("Poll error" in r.getMessage() for r in caplog.records)

        api.get_playback_state.side_effect = None
        api.get_playback_state.return_value = make_payload()
        assert await engine.poller.poll_once() is not None
        engine.clock.stop()

    @pytest.mark.asyncio
    async def test_start_polls_immediately(self, engine, api):
        """Test the first poll does not wait for the interval"""
        engine.poller.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert engine.poller.running
        assert api.get_playback_state.await_count == 1

        engine.poller.stop()
        assert not engine.poller.running

    @pytest.mark.asyncio
    async def test_loop_survives_failed_tick(self, engine, api, make_payload, caplog):
        """Test a tick raising an unexpected error does not end polling"""
        engine.poller.interval = 0.01
        api.get_playback_state.side_effect = [RuntimeError("boom"), ["unexpected"]] + [make_payload()] * 50

        engine.poller.start()
        await asyncio.sleep(0.1)

        assert engine.poller.running
        assert api.get_playback_state.await_count >= 3
        assert engine.state.last_track_id == "abc"
        assert any("Unexpected error during poll" in r.getMessage() for r in caplog.records)
        assert any("Poll error" in r.getMessage() for r in caplog.records)
        engine.poller.stop()

    @pytest.mark.asyncio
    async def test_restart_replaces_the_loop(self, engine, api):
        engine.poller.start()
        first = engine.poller._task
        engine.poller.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert first.cancelled() or first.done()
        assert api.get_playback_state.await_count == 1
        engine.poller.stop()

    @pytest.mark.asyncio
    async def test_schedule_poll(self, engine, api):
        """Test an extra poll runs after the requested delay"""
        engine.poller.schedule_poll(0.01)
        assert api.get_playback_state.await_count == 0

        await asyncio.sleep(0.05)

        assert api.get_playback_state.await_count == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_scheduled_polls(self, engine, api):
        engine.poller.schedule_poll(0.01)
        engine.poller.stop()

        await asyncio.sleep(0.05)

        assert api.get_playback_state.await_count == 0
