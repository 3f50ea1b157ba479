"""Test settings loading, validation and persistence"""

import yaml
import pytest

from djcompanion.config.settings import Settings
from djcompanion.utils.exceptions import ConfigError


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.yaml"
    path.write_text(yaml.safe_dump({
        'playback': {'poll_interval': 5.0, 'command_spacing_ms': 750},
        'library': {'path': str(temp_dir / "my-tracks.json")},
        'security': {'config_directory': str(temp_dir / "cfg")},
        'unknown_section': {'ignored': True},
        'spotify': {'not_a_field': 'ignored'},
    }), encoding="utf-8")
    return path


class TestSettings:
    """Test Settings"""

    def test_defaults(self, test_settings):
        assert test_settings.playback.poll_interval == 2.5
        assert test_settings.playback.progress_interval == 0.25
        assert test_settings.playback.command_spacing_ms == 500
        assert test_settings.playback.supplementary_poll_delay == 0.1
        assert test_settings.playback.token_refresh_margin == 180
        assert test_settings.spotify.redirect_url == "http://127.0.0.1:5173/callback"

    def test_yaml_overrides(self, config_file, temp_dir):
        settings = Settings(config_path=str(config_file))

        assert settings.playback.poll_interval == 5.0
        assert settings.playback.command_spacing_ms == 750
        assert settings.playback.progress_interval == 0.25
        assert settings.get_library_path() == temp_dir / "my-tracks.json"
        assert (temp_dir / "cfg").is_dir()
        assert not hasattr(settings.spotify, 'not_a_field')

    def test_environment_overrides(self, config_file, temp_dir, monkeypatch):
        monkeypatch.setenv('DJ_COMPANION_LIBRARY', str(temp_dir / "env-tracks.json"))
        monkeypatch.setenv('SPOTIFY_CLIENT_ID', 'env-client')

        settings = Settings(config_path=str(config_file))

        assert settings.get_library_path() == temp_dir / "env-tracks.json"
        assert settings.spotify.client_id == 'env-client'

    def test_validate(self, test_settings):
        test_settings.spotify.client_id = "id"
        test_settings.spotify.client_secret = "secret"
        assert test_settings.validate() == []

        test_settings.playback.progress_interval = 3.0
        test_settings.network.rate_limit = 0
        problems = test_settings.validate()
        assert "Progress interval must be shorter than the poll interval" in problems
        assert any("rate limit" in p for p in problems)

    def test_validate_requires_credentials(self, test_settings):
        test_settings.spotify.client_id = ""
        assert "Spotify client_id and client_secret are required" in test_settings.validate()

    def test_save_config_strips_secrets(self, test_settings, temp_dir):
        test_settings.spotify.client_id = "id"
        test_settings.spotify.client_secret = "secret"

        path = test_settings.save_config(str(temp_dir / "saved.yaml"))

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data['spotify']['client_id'] == ""
        assert data['spotify']['client_secret'] == ""
        assert data['playback']['poll_interval'] == 2.5

    def test_save_config_failure(self, test_settings, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("x", encoding="utf-8")

        with pytest.raises(ConfigError):
            test_settings.save_config(str(blocker / "config.yaml"))
