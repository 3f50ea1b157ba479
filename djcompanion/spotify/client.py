"""
Async Spotify Web API client for the player endpoints

This module provides the playback engine's only gateway to the Spotify Web
API. It is deliberately small: the engine needs the current player state,
the device list, and three transport commands.

Architecture Overview:

1. **Authentication**: every request asks the ``TokenProvider`` for a bearer
   token first. Without a session the request fails fast with
   ``NotAuthenticatedError`` and no HTTP call is made.

2. **Rate Limiting Layer**: requests pass through an ``asyncio_throttle``
   throttler (``network.rate_limit`` requests per second) so a burst of
   polls and commands cannot trip Spotify's own throttling.

3. **Uniform Failure Handling**: non-2xx statuses, empty bodies, malformed
   JSON and connection errors all surface as ``SpotifyAPIError``. The error
   message is taken from the body's ``error.message`` when present, and the
   error kind is classified here, once, from the status and Spotify's player
   ``reason`` code.

Endpoints consumed:
- ``GET  /me/player``            current playback snapshot, empty when idle
- ``GET  /me/player/devices``    available Connect devices
- ``PUT  /me/player/play``       start a specific track or resume
- ``PUT  /me/player/pause``      pause
- ``GET  /me``                   profile of the logged in user
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp
from asyncio_throttle import Throttler

from ..config.auth import TokenProvider
from ..config.settings import Settings, get_settings
from ..utils.exceptions import ErrorKind, NotAuthenticatedError, SpotifyAPIError
from ..utils.logger import get_logger
from .models import Device

# Player error reasons that describe a harmless race with the remote state
# (e.g. pausing something that was already paused from another device)
BENIGN_PLAYER_REASONS = frozenset({
    'ALREADY_PAUSED',
    'ALREADY_PLAYING',
    'NOT_PAUSED',
})


def classify_error(status: Optional[int], reason: Optional[str]) -> ErrorKind:
    """
    Classify a failed Web API response

    Args:
        status: HTTP status code
        reason: Spotify player error reason code, if the body carried one

    Returns:
        Structured error kind
    """
    if status == 401:
        return ErrorKind.AUTH
    if reason == 'NO_ACTIVE_DEVICE':
        return ErrorKind.DEVICE
    if reason in BENIGN_PLAYER_REASONS:
        return ErrorKind.TRANSIENT
    # Spotify's "Restriction violated" comes back as 403 with reason UNKNOWN
    if status == 403 and reason == 'UNKNOWN':
        return ErrorKind.TRANSIENT
    if status == 429 or (status is not None and status >= 500):
        return ErrorKind.NETWORK
    return ErrorKind.COMMAND


class PlaybackAPI:
    """
    Async client for the Spotify player endpoints

    The underlying ``aiohttp.ClientSession`` is created lazily on first use so
    that it binds to the running event loop, and is closed by ``close()``
    when the playback session stops.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the client

        Args:
            token_provider: Source of valid bearer tokens
            settings: Settings to use, defaults to the global settings
            session: Optional externally owned HTTP session (not closed by ``close()``)
        """
        self.settings = settings or get_settings()
        self.token_provider = token_provider
        self.base_url = self.settings.network.api_base_url.rstrip('/')
        self.logger = get_logger(__name__)
        self.throttler = Throttler(rate_limit=self.settings.network.rate_limit, period=1.0)

        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.network.request_timeout),
                headers={'User-Agent': self.settings.network.user_agent}
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it"""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Optional[Any]:
        """
        Perform an authenticated, throttled request

        Args:
            method: HTTP method
            path: Path below the API base URL (e.g. ``/me/player``)
            params: Query string parameters
            json_body: JSON request body

        Returns:
            Decoded JSON body, or None for 202/204/empty success responses

        Raises:
            NotAuthenticatedError: No valid session, nothing was sent
            SpotifyAPIError: Any transport, status or decoding failure
        """
        token = await self.token_provider.get_valid_token()
        if not token:
            raise NotAuthenticatedError()

        headers = {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        }
        url = f"{self.base_url}{path}"

        try:
            async with self.throttler:
                async with self._get_session().request(
                    method, url, params=params, json=json_body, headers=headers
                ) as response:
                    status = response.status
                    body = await response.read()
        except asyncio.TimeoutError:
            raise SpotifyAPIError(
                f"Spotify request timed out: {method} {path}",
                details={'path': path},
                kind=ErrorKind.NETWORK
            )
        except aiohttp.ClientError as e:
            raise SpotifyAPIError(
                f"Network error talking to Spotify: {e}",
                details={'path': path, 'original_error': repr(e)},
                kind=ErrorKind.NETWORK
            )

        self.logger.debug(f"{method} {path} -> {status}")
        return self._decode(method, path, status, body)

    def _decode(self, method: str, path: str, status: int, body: bytes) -> Optional[Any]:
        """Turn a raw response into data or a classified SpotifyAPIError"""
        details = {'method': method, 'path': path, 'status': status}

        if status in (202, 204):
            return None

        if not body or not body.strip():
            if 200 <= status < 300:
                return None
            raise SpotifyAPIError(
                f"Spotify error {status}: empty response",
                details=details, kind=ErrorKind.TRANSIENT, status=status
            )

        try:
            data = json.loads(body.decode('utf-8'))
        except ValueError:
            # UnicodeDecodeError is a ValueError too
            raise SpotifyAPIError(
                "Failed to parse Spotify response",
                details={**details, 'body': body[:200].decode('utf-8', errors='replace')},
                kind=ErrorKind.TRANSIENT, status=status
            )

        if status >= 400:
            message, reason = None, None
            error = data.get('error') if isinstance(data, dict) else None
            if isinstance(error, dict):
                message = error.get('message')
                reason = error.get('reason')
            elif isinstance(error, str):
                message = data.get('error_description') or error
            raise SpotifyAPIError(
                message or f"Spotify error {status}",
                details={**details, 'reason': reason},
                kind=classify_error(status, reason),
                status=status,
                reason=reason
            )

        return data

    async def get_playback_state(self) -> Optional[Dict[str, Any]]:
        """Current player state, None when nothing is loaded"""
        return await self._request('GET', '/me/player')

    async def get_devices(self) -> List[Device]:
        """Available Spotify Connect devices"""
        data = await self._request('GET', '/me/player/devices')
        if not data:
            return []
        try:
            return [Device.from_spotify_data(d) for d in data.get('devices') or []]
        except (KeyError, AttributeError, TypeError) as e:
            raise SpotifyAPIError(
                f"Failed to parse device list: {e}",
                details={'path': '/me/player/devices'},
                kind=ErrorKind.TRANSIENT
            )

    async def start_track(self, device_id: str, track_uri: str) -> None:
        """
        Start playback of a specific track on a device

        Args:
            device_id: Target device ID
            track_uri: ``spotify:track:<id>`` URI
        """
        await self._request(
            'PUT', '/me/player/play',
            params={'device_id': device_id},
            json_body={'uris': [track_uri]}
        )

    async def resume(self) -> None:
        """Resume the current context on the active device"""
        await self._request('PUT', '/me/player/play')

    async def pause(self) -> None:
        """Pause playback on the active device"""
        await self._request('PUT', '/me/player/pause')

    async def get_me(self) -> Optional[Dict[str, Any]]:
        """Profile of the logged in user"""
        return await self._request('GET', '/me')
