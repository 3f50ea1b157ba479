"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, Mock

from djcompanion.config.settings import Settings
from djcompanion.playback.events import PlayerEventType
from djcompanion.playback.player import InProcessPlayer
from djcompanion.playback.session import PlaybackSession
from djcompanion.playback.view import PlaybackView
from djcompanion.spotify.client import PlaybackAPI


class FakeClock:
    """Millisecond clock that only moves when told to"""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class RecordingView(PlaybackView):
    """PlaybackView that records every callback"""

    def __init__(self):
        self.now_playing = []
        self.progress = []
        self.play_button = []
        self.highlights = []
        self.statuses = []
        self.highlights_cleared = 0
        self.status_cleared = 0

    def show_now_playing(self, snapshot, bpm):
        self.now_playing.append((snapshot.track_name, snapshot.artist_names, bpm))

    def show_progress(self, position_ms, duration_ms):
        self.progress.append((position_ms, duration_ms))

    def set_play_button(self, paused):
        self.play_button.append(paused)

    def highlight_track(self, track_id, is_playing):
        self.highlights.append((track_id, is_playing))

    def clear_highlights(self):
        self.highlights_cleared += 1

    def show_status(self, message, level):
        self.statuses.append((message, level))

    def clear_status(self):
        self.status_cleared += 1


class FakePlayer(InProcessPlayer):
    """In-process player that registers instantly"""

    def __init__(self, channel, name="Test Player"):
        super().__init__(channel, name)
        self.toggle_calls = 0
        self.fail_with = None

    async def connect(self):
        self._connected = True
        self.emit(PlayerEventType.READY, device_id="sdk-device")
        return True

    async def disconnect(self):
        self._connected = False
        self.emit(PlayerEventType.NOT_READY)

    async def toggle_play(self):
        self.toggle_calls += 1
        if self.fail_with is not None:
            raise self.fail_with


def playback_payload(track_id="abc", is_playing=True, progress_ms=5000, duration_ms=200000,
                     name="Shiny Stockings", artists=("Count Basie",)):
    """Body of a GET /me/player response"""
    return {
        'is_playing': is_playing,
        'progress_ms': progress_ms,
        'item': {
            'id': track_id,
            'name': name,
            'duration_ms': duration_ms,
            'artists': [{'name': a} for a in artists],
        },
    }


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def test_settings(temp_dir):
    """Settings with default timings and storage inside the temp directory"""
    settings = Settings(config_path=str(temp_dir / "missing.yaml"))
    settings.security.config_directory = str(temp_dir)
    settings.security.token_storage_path = str(temp_dir / "tokens.json")
    settings.library.path = str(temp_dir / "tracks.json")
    return settings


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def view():
    return RecordingView()


@pytest.fixture
def token_provider():
    provider = Mock()
    provider.get_valid_token = AsyncMock(return_value="test-token")
    provider.clear = Mock()
    return provider


@pytest.fixture
def api(token_provider):
    """Stub PlaybackAPI with async methods"""
    stub = Mock(spec=PlaybackAPI)
    stub.token_provider = token_provider
    stub.get_playback_state = AsyncMock(return_value=None)
    stub.get_devices = AsyncMock(return_value=[])
    stub.start_track = AsyncMock(return_value=None)
    stub.resume = AsyncMock(return_value=None)
    stub.pause = AsyncMock(return_value=None)
    stub.get_me = AsyncMock(return_value={'id': 'dj', 'display_name': 'DJ'})
    stub.close = AsyncMock(return_value=None)
    return stub


@pytest.fixture
def engine(view, test_settings, token_provider, api, fake_clock):
    """PlaybackSession wired to the stub API, recording view and fake clock"""
    return PlaybackSession(
        view=view,
        settings=test_settings,
        token_provider=token_provider,
        api=api,
        time_source=fake_clock
    )


@pytest.fixture
def engine_with_player(view, test_settings, token_provider, api, fake_clock):
    """PlaybackSession with a FakePlayer as in-process player"""
    return PlaybackSession(
        view=view,
        settings=test_settings,
        token_provider=token_provider,
        api=api,
        player_factory=FakePlayer,
        time_source=fake_clock
    )


@pytest.fixture
def make_payload():
    """Factory for GET /me/player bodies"""
    return playback_payload
