"""
Configuration management package for DJ-Companion

This package provides the configuration and authentication layer:

1. Settings Management (settings.py):
   - Application configuration from YAML files and environment variables
   - Settings validation
   - Configuration persistence and reloading

2. Authentication Management (auth.py):
   - Spotify OAuth2 authentication flow implementation
   - Secure token storage and automatic refresh
   - Async token provider for the playback engine

Usage Patterns:

    from djcompanion.config import get_settings, get_auth

    settings = get_settings()
    auth = get_auth()

Configuration Sources (in order of precedence):
1. Environment variables (highest priority, for sensitive data)
2. YAML configuration files (primary configuration method)
3. Default values (fallback for missing configuration)
"""

# Settings management imports
from .settings import get_settings, reload_settings, Settings

# Authentication management imports
from .auth import get_auth, reset_auth, SpotifyAuth, TokenProvider

__all__ = [
    # Settings management - primary configuration interface
    'get_settings',      # Factory function for singleton settings access
    'reload_settings',   # Function to reload settings from files
    'Settings',          # Settings class for direct instantiation

    # Authentication management - Spotify OAuth2 interface
    'get_auth',          # Factory function for singleton authentication access
    'reset_auth',        # Function to reset authentication state
    'SpotifyAuth',       # Blocking OAuth2 manager used by the CLI
    'TokenProvider'      # Async token provider used by the playback engine
]
