"""
DJ-Companion settings

Settings come from three layers, later ones winning:

1. Dataclass defaults below (the playback timings are tuned for Spotify's
   player API and rarely need changing)
2. The first YAML file found: ``--config PATH``,
   ``~/.dj-companion/config.yaml`` or ``./config.yaml``
3. Environment variables (a ``.env`` file in the working directory is
   loaded first), used for the Spotify app credentials

A YAML file only needs the keys it changes::

    playback:
      poll_interval: 3.0
    library:
      path: ~/Music/dj/tracks.json
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
from dotenv import load_dotenv

from ..utils.exceptions import ConfigError

load_dotenv()


@dataclass
class SpotifyConfig:
    """
    Spotify app registration

    ``redirect_url`` must be registered for the app in the Spotify developer
    dashboard. Keep the credentials in the environment rather than in YAML.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://127.0.0.1:5173/callback"
    scope: str = (
        "streaming user-read-email user-read-private "
        "user-modify-playback-state user-read-playback-state user-library-read"
    )


@dataclass
class PlaybackConfig:
    """
    Playback engine timing configuration

    Controls how often the remote player is polled, how smoothly the progress
    bar is animated between polls and how transport commands are throttled.
    Spotify throttles rapid play/pause commands, so the command spacing should
    not go much below half a second.
    """
    poll_interval: float = 2.5              # seconds between remote polls
    progress_interval: float = 0.25         # seconds between progress redraws
    command_spacing_ms: int = 500           # minimum spacing per command class
    supplementary_poll_delay: float = 0.1   # extra poll after play_track
    token_refresh_margin: int = 180         # refresh tokens expiring within 3 minutes
    status_clear_delay: float = 3.5         # non-error status messages auto-clear
    player_name: str = "Swing DJ Companion"


@dataclass
class LibraryConfig:
    """Location of the flat JSON track store holding the BPM-tagged tracks"""
    path: str = "~/.dj-companion/tracks.json"


@dataclass
class LoggingConfig:
    """Log file location, rotation and console output"""
    level: str = "INFO"
    file: str = "dj-companion.log"
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Web API endpoints and request limits

    ``rate_limit`` caps the requests per second the playback engine sends,
    polls and commands together.
    """
    api_base_url: str = "https://api.spotify.com/v1"
    accounts_url: str = "https://accounts.spotify.com"
    user_agent: str = "DJ-Companion/0.4"
    request_timeout: int = 10
    rate_limit: int = 10


@dataclass
class SecurityConfig:
    """Where tokens and the user configuration live"""
    token_storage_path: str = "~/.dj-companion/tokens.json"
    config_directory: str = "~/.dj-companion/"


# Environment variable -> (section, attribute)
ENV_OVERRIDES = {
    'SPOTIFY_CLIENT_ID': ('spotify', 'client_id'),
    'SPOTIFY_CLIENT_SECRET': ('spotify', 'client_secret'),
    'SPOTIFY_REDIRECT_URL': ('spotify', 'redirect_url'),
    'DJ_COMPANION_LIBRARY': ('library', 'path'),
    'DJ_COMPANION_LOG_LEVEL': ('logging', 'level'),
}


class Settings:
    """
    All configuration sections of the application

    Attributes:
        spotify, playback, library, logging, network, security: Section dataclasses
        config_path: Explicit YAML file passed by the user, if any
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Build settings from defaults, the YAML file and the environment

        Args:
            config_path: YAML file to read before the default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".dj-companion"

        self.spotify = SpotifyConfig()
        self.playback = PlaybackConfig()
        self.library = LibraryConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.security = SecurityConfig()

        self._load_config()
        self._load_environment_variables()
        self._create_directories()

    def _sections(self) -> Dict[str, Any]:
        """Map of YAML section names to their dataclass instances"""
        return {
            'spotify': self.spotify,
            'playback': self.playback,
            'library': self.library,
            'logging': self.logging,
            'network': self.network,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """Read the first YAML file that exists; unreadable files are skipped with a warning"""
        candidates = [self.config_path, self.config_dir / "config.yaml", Path("config.yaml")]

        for candidate in candidates:
            if not candidate or not Path(candidate).exists():
                continue
            try:
                with open(candidate, 'r', encoding='utf-8') as f:
                    config_data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                # Logging is configured from these settings, so it is not available yet
                print(f"Warning: Failed to load config from {candidate}: {e}")
                continue
            if isinstance(config_data, dict):
                self._apply_config(config_data)
            return

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Copy YAML values onto the section dataclasses

        Unknown sections and keys are ignored so an older config file keeps
        working after a setting was removed.
        """
        sections = self._sections()

        for section_name, values in config_data.items():
            section = sections.get(section_name)
            if section is None or not isinstance(values, dict):
                continue
            for key, value in values.items():
                if hasattr(section, key):
                    setattr(section, key, value)

    def _load_environment_variables(self) -> None:
        sections = self._sections()
        for env_var, (section_name, attr) in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                setattr(sections[section_name], attr, value)

    def _create_directories(self) -> None:
        directory = self.get_config_directory()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Warning: Failed to create directory {directory}: {e}")

    def get_config_directory(self) -> Path:
        """Expanded configuration directory path"""
        return Path(self.security.config_directory).expanduser()

    def get_token_storage_path(self) -> Path:
        """Expanded token storage file path"""
        return Path(self.security.token_storage_path).expanduser()

    def get_library_path(self) -> Path:
        """Expanded DJ library (tracks.json) path"""
        return Path(self.library.path).expanduser()

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Write the current settings as YAML

        The Spotify client id and secret are blanked in the written file.

        Args:
            path: Target file, ``config.yaml`` in the config directory by default

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If the file cannot be written
        """
        target = Path(path) if path else self.get_config_directory() / "config.yaml"

        config_data = {name: asdict(section) for name, section in self._sections().items()}
        config_data['spotify'].update(client_id="", client_secret="")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {target}: {e}", details={'path': str(target)})
        return target

    def validate(self) -> List[str]:
        """
        Check the settings before the playback engine starts

        Returns:
            Human-readable problems, empty when the configuration is usable
        """
        errors = []

        if not self.spotify.client_id or not self.spotify.client_secret:
            errors.append("Spotify client_id and client_secret are required")

        if self.playback.poll_interval <= 0:
            errors.append(f"Invalid poll interval: {self.playback.poll_interval}")

        if self.playback.progress_interval <= 0:
            errors.append(f"Invalid progress interval: {self.playback.progress_interval}")

        if self.playback.progress_interval >= self.playback.poll_interval:
            errors.append("Progress interval must be shorter than the poll interval")

        if self.playback.command_spacing_ms < 0:
            errors.append(f"Invalid command spacing: {self.playback.command_spacing_ms}")

        if self.network.rate_limit < 1:
            errors.append(f"Invalid rate limit: {self.network.rate_limit}")

        return errors

    def __str__(self) -> str:
        return (
            f"Settings(Poll: {self.playback.poll_interval}s, "
            f"Progress: {self.playback.progress_interval}s, "
            f"Library: {self.library.path})"
        )


settings = Settings()


def get_settings() -> Settings:
    """Process-wide settings instance"""
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Rebuild the process-wide settings, e.g. after ``--config PATH``

    Args:
        config_path: YAML file to read first

    Returns:
        The new Settings instance
    """
    global settings
    settings = Settings(config_path)
    return settings
