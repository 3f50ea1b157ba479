"""Test the playback session lifecycle"""

import asyncio

import pytest

from djcompanion.playback.events import PlayerEvent, PlayerEventType


class TestPlaybackSession:
    """Test start/stop of the owned engine context"""

    @pytest.mark.asyncio
    async def test_start_connects_player_and_polls(self, engine_with_player, api, make_payload):
        api.get_playback_state.return_value = make_payload()
        engine = engine_with_player

        await engine.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert engine.started
        assert engine.player.connected
        assert engine.resolver.sdk_device_id == "sdk-device"
        assert engine.poller.running
        assert api.get_playback_state.await_count == 1
        assert engine.state.last_track_id == "abc"

        await engine.stop()

    @pytest.mark.asyncio
    async def test_stop_resets_everything(self, engine_with_player, api, view, token_provider, make_payload):
        """Test stop behaves like a logout"""
        api.get_playback_state.return_value = make_payload(is_playing=True)
        engine = engine_with_player
        await engine.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert engine.clock.active

        await engine.stop()

        assert not engine.started
        assert not engine.poller.running
        assert not engine.clock.active
        assert not engine.player.connected
        assert engine.resolver.sdk_device_id is None
        assert engine.state.paused is True
        assert engine.state.last_track_id is None
        assert engine.state.snapshot is None
        assert view.highlights_cleared == 1
        assert view.play_button[-1] is True
        token_provider.clear.assert_called_once()
        api.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_async_context_manager(self, engine, api):
        async with engine as session:
            assert session is engine
            assert engine.poller.running

        assert not engine.poller.running
        api.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_player_state_events_reach_state(self, engine_with_player):
        engine = engine_with_player
        await engine.start()

        engine.channel.publish(PlayerEvent(PlayerEventType.STATE_CHANGED, track_id="xyz", paused=False))

        assert engine.state.last_track_id == "xyz"
        assert engine.state.paused is False
        await engine.stop()

    @pytest.mark.asyncio
    async def test_refresh_polls_once(self, engine, api, make_payload):
        api.get_playback_state.return_value = make_payload(is_playing=False)

        await engine.refresh()

        assert engine.state.last_track_id == "abc"
        assert engine.state.paused is True
