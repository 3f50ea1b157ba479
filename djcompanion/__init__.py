"""
DJ-Companion: Spotify playback companion for building and playing a DJ library
A small desktop companion that keeps a personal DJ library of Spotify tracks
tagged with tempo (BPM) and controls playback against the Spotify player.

## Project Overview

Social dancers and DJs pick tracks by tempo. DJ-Companion keeps a flat list of
favourite Spotify tracks annotated with BPM and lets the user start and pause
playback from it, while showing what Spotify is actually playing right now.

The interesting part of the application is the playback engine: the local UI
intent (play this track, pause, resume) has to be reconciled with a remote,
polled, eventually-consistent playback state, and the progress display has to
stay smooth between polls without hammering the Web API.

## Core Architecture

**Configuration Management (`djcompanion/config/`)**
- YAML and environment variable settings with dataclass sections
- Spotify OAuth2 login, token storage and refresh
- Async token provider used by the playback engine

**Spotify Integration (`djcompanion/spotify/`)**
- Async Web API client for the player endpoints (aiohttp + throttling)
- Playback snapshot and device models

**Playback Engine (`djcompanion/playback/`)**
- Remote state poller (2.5s) with an immediate first poll
- Interpolation clock (250ms) for flicker-free progress between polls
- Command dispatcher with de-duplication, throttling and optimistic updates
- Device resolver preferring an in-process player session
- Event channel decoupling the in-process player from the poll loop

**DJ Library (`djcompanion/library/`)**
- Flat JSON track store with BPM annotations
- Read-only mirror consulted for the now-playing BPM

**User Interface (`djcompanion/ui/`, `djcompanion/main.py`)**
- Terminal renderer with a live progress bar
- Click based command-line interface

### Quick Start
```bash
pip install -e .
export SPOTIFY_CLIENT_ID=... SPOTIFY_CLIENT_SECRET=...
dj-companion auth login
dj-companion library add "https://open.spotify.com/track/..." --bpm 120
dj-companion watch
```
"""

# Version information for the DJ-Companion package
__version__ = "0.4.0"

# Package author information
__author__ = "DJ-Companion Team"

# Concise description of package functionality for package managers and documentation
__description__ = "Spotify playback companion for building and playing a BPM-tagged DJ library"

__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
