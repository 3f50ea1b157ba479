"""
Main CLI interface for DJ-Companion

This module provides the command-line interface for the application: Spotify
authentication, configuration, DJ library management and playback control.
It is the primary entry point for user interaction.

The CLI is built using Click framework and provides structured command groups for:
- Authentication handling (login, logout, status)
- Configuration management (show)
- DJ library operations (list, add, remove, set-bpm)
- Playback control (play, toggle, watch)

``watch`` runs a full ``PlaybackSession`` rendering to the terminal and reads
line commands from stdin: ``p`` toggles play/pause, ``play <track>`` starts a
track, ``q`` quits.
"""

import asyncio
import functools
import sys
from typing import Optional

import click

from . import __version__
from .config.settings import get_settings, reload_settings
from .config.auth import get_auth, reset_auth
from .library.store import LibraryMirror, LibraryStore, fetch_library_track
from .playback.session import PlaybackSession
from .spotify.models import CommandResult
from .ui.terminal import TerminalView
from .utils.exceptions import ConfigError, DJCompanionError, LibraryError
from .utils.helpers import extract_spotify_uri, format_duration, track_id_from_uri
from .utils.logger import configure_from_settings, get_logger, get_current_log_file


# Initialize logging system from configuration settings
configure_from_settings()
logger = get_logger(__name__)


def print_banner():
    """Print application banner to console"""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                         DJ-Companion                          ║
║                                                               ║
║      BPM-tagged DJ library and Spotify playback control       ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Wraps CLI command functions to provide consistent error handling across
    all commands: user cancellation exits with 130, application errors are
    logged and shown in red with exit code 1.

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function with error handling
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except DJCompanionError as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _library_store() -> LibraryStore:
    return LibraryStore(get_settings().get_library_path())


def _require_credentials() -> None:
    settings = get_settings()
    if not settings.spotify.client_id or not settings.spotify.client_secret:
        raise ConfigError(
            "Spotify client_id and client_secret are required. "
            "Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET or add them to config.yaml."
        )


def _resolve_track_id(track: str) -> str:
    """Accept a bare track id, a spotify:track URI or an open.spotify.com link"""
    uri = extract_spotify_uri(track)
    return track_id_from_uri(uri) if uri else track.strip()


def _exit_on_failure(result: CommandResult) -> None:
    if result.rejected:
        click.echo("Command dropped, another one is still in progress")
    elif not result.ok:
        sys.exit(1)


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    DJ-Companion - Spotify playback for a BPM-tagged DJ library

    Keeps a personal list of Spotify tracks annotated with tempo and controls
    playback on your Spotify devices while showing what is playing right now.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"DJ-Companion v{__version__}")
        return

    if config:
        reload_settings(config)
        configure_from_settings()
        click.echo(f"Loaded config: {config}")

    if verbose:
        ctx.obj['verbose'] = True
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


# Authentication commands
@cli.group()
def auth():
    """
    Authentication management

    Command group for logging in to Spotify, logging out and checking the
    current session.
    """
    pass


@auth.command()
@handle_error
def login():
    """
    Authenticate with Spotify

    Opens the Spotify consent page in the browser and stores the resulting
    tokens. Does nothing if a valid session already exists.
    """
    _require_credentials()
    auth_manager = get_auth()

    if auth_manager.is_authenticated():
        user_info = auth_manager.get_user_info()
        username = user_info.get('display_name', user_info.get('id', 'Unknown')) if user_info else 'Unknown'
        click.echo(f"Already authenticated as: {username}")
        return

    click.echo("Starting Spotify authentication...")
    token = auth_manager.get_valid_token(interactive=True)
    if not token:
        click.echo(click.style("Authentication failed", fg='red'), err=True)
        sys.exit(1)

    user_info = auth_manager.get_user_info()
    username = user_info.get('display_name', user_info.get('id', 'Unknown')) if user_info else 'Unknown'
    click.echo(click.style(f"Successfully authenticated as: {username}", fg='green'))


@auth.command()
@handle_error
def logout():
    """
    Remove stored authentication

    Deletes the stored tokens. You will need to log in again before
    controlling playback.
    """
    auth_manager = get_auth()
    auth_manager.revoke_token()
    reset_auth()
    click.echo("Successfully logged out")


@auth.command()
@handle_error
def status():
    """Check authentication status"""
    auth_manager = get_auth()

    if auth_manager.is_authenticated():
        user_info = auth_manager.get_user_info()
        if user_info:
            click.echo("Authentication Status: Authenticated")
            click.echo(f"   User: {user_info.get('display_name', user_info.get('id', 'Unknown'))}")
            click.echo(f"   Product: {user_info.get('product', 'Unknown')}")
        else:
            click.echo("Authentication Status: Authenticated (limited info)")
    elif auth_manager.has_stored_session():
        click.echo("Authentication Status: Session stored but could not be verified")
    else:
        click.echo("Authentication Status: Not authenticated")
        click.echo("   Run 'dj-companion auth login' to authenticate")


# Configuration commands
@cli.group()
def config():
    """
    Configuration management

    Command group for viewing the effective configuration.
    """
    pass


@config.command()
@handle_error
def show():
    """
    Show current configuration

    Displays the effective settings after config files and environment
    variables were applied, followed by any validation problems.
    """
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Spotify:")
    click.echo(f"   Client ID: {'set' if settings.spotify.client_id else 'missing'}")
    click.echo(f"   Client secret: {'set' if settings.spotify.client_secret else 'missing'}")
    click.echo(f"   Redirect URL: {settings.spotify.redirect_url}")

    click.echo("\nPlayback:")
    click.echo(f"   Poll interval: {settings.playback.poll_interval}s")
    click.echo(f"   Progress interval: {settings.playback.progress_interval}s")
    click.echo(f"   Command spacing: {settings.playback.command_spacing_ms}ms")
    click.echo(f"   Player name: {settings.playback.player_name}")

    click.echo("\nLibrary:")
    click.echo(f"   Path: {settings.get_library_path()}")

    current_log = get_current_log_file()
    click.echo("\nLogging:")
    click.echo(f"   Level: {settings.logging.level}")
    click.echo(f"   File: {current_log if current_log else 'console only'}")

    problems = settings.validate()
    if problems:
        click.echo(f"\nFound {len(problems)} issues:")
        for problem in problems:
            click.echo(click.style(f"   • {problem}", fg='yellow'))


# DJ library commands
@cli.group()
def library():
    """
    DJ library management

    Command group for the BPM-tagged track list.
    """
    pass


@library.command(name='list')
@handle_error
def list_tracks():
    """List the tracks in the DJ library"""
    tracks = _library_store().load()
    if not tracks:
        click.echo("Your DJ library is empty. Add tracks with 'dj-companion library add <link>'")
        return

    click.echo(f"DJ library ({len(tracks)} tracks):\n")
    for track in tracks:
        bpm = click.style(f"{track.bpm:>3} BPM", fg='cyan') if track.bpm else click.style("  - BPM", fg='bright_black')
        click.echo(f"   {bpm}  {format_duration(track.duration):>5}  {track.artist} - {track.name}  [{track.id}]")


@library.command()
@click.argument('link')
@click.option('--bpm', type=int, help='Override the detected tempo')
@click.option('--notes', default="", help='Free-form notes')
@handle_error
def add(link, bpm, notes):
    """
    Add a track to the DJ library

    LINK is a Spotify track link or spotify:track URI. Metadata and tempo are
    fetched from Spotify.
    """
    _require_credentials()
    spotify = get_auth().get_spotify_client()
    if spotify is None:
        raise DJCompanionError("Not authenticated. Run 'dj-companion auth login' first.")

    track = fetch_library_track(spotify, link)
    if bpm is not None:
        track.bpm = bpm if bpm > 0 else None
    track.notes = notes

    try:
        _library_store().add(track)
    except LibraryError as e:
        if e.details.get('duplicate'):
            click.echo(click.style(f"Already in library: {track.artist} - {track.name}", fg='yellow'))
            return
        raise

    bpm_label = f" ({track.bpm} BPM)" if track.bpm else ""
    click.echo(click.style(f"Added: {track.artist} - {track.name}{bpm_label}", fg='green'))


@library.command()
@click.argument('track')
@handle_error
def remove(track):
    """Remove a track from the DJ library"""
    track_id = _resolve_track_id(track)
    if _library_store().remove(track_id):
        click.echo(f"Removed {track_id}")
    else:
        click.echo(click.style(f"Not in library: {track_id}", fg='yellow'))


@library.command(name='set-bpm')
@click.argument('track')
@click.argument('bpm', type=int)
@handle_error
def set_bpm(track, bpm):
    """Set the tempo of a library track (0 clears it)"""
    track_id = _resolve_track_id(track)
    updated = _library_store().update(track_id, 'bpm', bpm if bpm > 0 else None)
    label = f"{updated.bpm} BPM" if updated.bpm else "no BPM"
    click.echo(f"{updated.artist} - {updated.name}: {label}")


# Playback commands
async def _run_once(command: str, track_id: Optional[str] = None) -> CommandResult:
    session = PlaybackSession(view=TerminalView(disable_bar=True))
    try:
        if command == 'play':
            return await session.play_track(track_id)
        # Learn the current paused/playing state first
        await session.refresh()
        return await session.toggle_play_pause()
    finally:
        await session.stop()


@cli.command()
@click.argument('track')
@handle_error
def play(track):
    """
    Play a track on the active device

    TRACK is a library track id, a spotify:track URI or a Spotify link.
    """
    _require_credentials()
    track_id = _resolve_track_id(track)
    result = asyncio.run(_run_once('play', track_id))
    if result.ok:
        click.echo(f"Playing {track_id}")
    _exit_on_failure(result)


@cli.command()
@handle_error
def toggle():
    """Toggle play/pause on the active device"""
    _require_credentials()
    result = asyncio.run(_run_once('toggle'))
    _exit_on_failure(result)


async def _watch(store: LibraryStore) -> None:
    mirror = LibraryMirror(store, auto_refresh=True)
    mirror.refresh()
    view = TerminalView()
    loop = asyncio.get_running_loop()

    async with PlaybackSession(view=view, library=mirror) as session:
        try:
            me = await session.api.get_me()
        except DJCompanionError as e:
            logger.warning(f"Could not load user profile: {e}")
            me = None
        if me:
            session.reporter.ok(f"Logged in as {me.get('display_name') or me.get('id')}")

        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            command = line.strip()
            if command in ('q', 'quit'):
                break
            if command == 'p':
                await session.toggle_play_pause()
            elif command.startswith('play '):
                await session.play_track(_resolve_track_id(command[5:]))
            elif command:
                session.reporter.info("Commands: p (play/pause), play <track>, q (quit)")

    view.close()


@cli.command()
@handle_error
def watch():
    """
    Follow Spotify playback live

    Shows what is playing with a live progress bar and the BPM from your
    library. Type 'p' + Enter to toggle play/pause, 'play <track>' to start a
    track and 'q' to quit.
    """
    _require_credentials()
    if not get_auth().has_stored_session():
        raise DJCompanionError("Not authenticated. Run 'dj-companion auth login' first.")

    click.echo(click.style("Watching Spotify playback. p = play/pause, play <track>, q = quit", fg='green'))
    asyncio.run(_watch(_library_store()))


# Entry point for module execution
if __name__ == '__main__':
    cli()
