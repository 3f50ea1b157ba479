"""
OAuth2 authentication and token management for Spotify API

This module implements the OAuth2 authorization code flow for Spotify Web API
access, secure token storage, automatic token refresh, and the async token
provider consumed by the playback engine.

Key features:
- OAuth2 authorization code flow with a localhost callback server
- Token storage with restrictive file permissions
- Token refresh ahead of expiry with a configurable safety margin
- Async ``TokenProvider`` that refreshes off the event loop

The authentication flow follows Spotify's OAuth2 specification:
1. Generate authorization URL with required scopes
2. Open browser for user consent
3. Receive authorization code via callback
4. Exchange code for access/refresh tokens
5. Store tokens securely for future use
6. Refresh tokens when they are about to expire

The blocking ``SpotifyAuth`` is used directly by the CLI. The playback engine
only ever talks to ``TokenProvider``, which answers from memory while the
token is comfortably valid and otherwise delegates the blocking refresh to a
worker thread so polling and commands never stall the event loop.
"""

import asyncio
import json
import secrets
import threading
import time
import urllib.parse
import webbrowser
from datetime import datetime
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional

import requests
import spotipy

from .settings import Settings, get_settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CallbackHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for OAuth2 callback processing

    Extracts the authorization code (or error) from the callback URL sent by
    Spotify's authorization server after user consent and stores it on the
    server instance for the waiting login flow.
    """

    def do_GET(self):
        """Handle the redirect from Spotify's authorization server"""
        parsed = urllib.parse.urlparse(self.path)
        params = urllib.parse.parse_qs(parsed.query)

        if 'code' in params:
            self.server.auth_code = params['code'][0]
            self.server.auth_state = params.get('state', [None])[0]
            message = "Login successful! You can close this window and return to DJ-Companion."
            status = 200
        else:
            self.server.auth_error = params.get('error', ['unknown_error'])[0]
            message = f"Login failed: {self.server.auth_error}"
            status = 400

        self.send_response(status)
        self.send_header('Content-Type', 'text/html; charset=utf-8')
        self.end_headers()
        body = (
            "<html><body style='font-family:sans-serif;background:#111;color:#eee;"
            f"text-align:center;padding-top:60px'><h2>{message}</h2></body></html>"
        )
        self.wfile.write(body.encode('utf-8'))
        self.server.callback_received.set()

    def log_message(self, format, *args):
        """Silence the default stderr request logging"""
        pass


class SpotifyAuth:
    """
    Spotify OAuth2 authentication and token management

    Handles the complete OAuth2 flow for Spotify API authentication,
    including authorization, token storage, refresh, and session management.

    Attributes:
        settings: Application settings instance
        token_file: Path to secure token storage file
        client_id: Spotify application client ID
        client_secret: Spotify application client secret
        redirect_uri: OAuth2 callback URL (must match the Spotify app registration)
        scope: Required permission scopes for playback control
        refresh_margin: Seconds before expiry at which tokens are refreshed
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize authentication manager with application settings

        Args:
            settings: Settings to use, defaults to the global settings
        """
        self.settings = settings or get_settings()

        self.token_file = self.settings.get_token_storage_path()

        self.client_id = self.settings.spotify.client_id
        self.client_secret = self.settings.spotify.client_secret
        self.redirect_uri = self.settings.spotify.redirect_url
        self.scope = self.settings.spotify.scope
        self.refresh_margin = self.settings.playback.token_refresh_margin
        self.token_url = f"{self.settings.network.accounts_url}/api/token"

        self._spotify_client: Optional[spotipy.Spotify] = None
        self._token_info: Optional[Dict[str, Any]] = None

    def build_authorize_url(self, state: str) -> str:
        """
        Build the Spotify consent URL

        Args:
            state: Opaque anti-forgery value echoed back on the callback

        Returns:
            Authorization URL to open in the browser
        """
        query = urllib.parse.urlencode({
            'client_id': self.client_id,
            'response_type': 'code',
            'redirect_uri': self.redirect_uri,
            'scope': self.scope,
            'state': state,
            'show_dialog': 'true',
        })
        return f"{self.settings.network.accounts_url}/authorize?{query}"

    def _load_token(self) -> Optional[Dict[str, Any]]:
        """
        Load and validate stored authentication token from file

        Returns:
            Token dictionary if the stored structure is valid, None otherwise

        Note:
            Validates token structure but does not check expiration - that's
            handled separately to allow for refresh token usage.
        """
        if not self.token_file.exists():
            return None

        try:
            with open(self.token_file, 'r', encoding='utf-8') as f:
                token_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load stored token: {e}")
            return None

        required_fields = ['access_token', 'refresh_token', 'expires_at']
        if isinstance(token_data, dict) and all(field in token_data for field in required_fields):
            return token_data

        logger.warning("Invalid token structure, re-authentication required")
        return None

    def _save_token(self, token_info: Dict[str, Any]) -> None:
        """
        Save token information to secure storage file

        Adds metadata (saved_at timestamp, client_id) and sets file permissions
        to 600 (owner only) on Unix-like systems.

        Args:
            token_info: Complete token information dictionary to store
        """
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)

            token_data = {
                **token_info,
                'saved_at': datetime.now().isoformat(),
                'client_id': self.client_id
            }

            with open(self.token_file, 'w', encoding='utf-8') as f:
                json.dump(token_data, f, indent=2)

            try:
                self.token_file.chmod(0o600)
            except OSError:
                # Windows doesn't support chmod
                pass

        except OSError as e:
            logger.warning(f"Failed to save token: {e}")

    def _is_token_expired(self, token_info: Dict[str, Any]) -> bool:
        """
        Check if access token is expired or approaching expiration

        Args:
            token_info: Token information dictionary containing expires_at field

        Returns:
            True if token is expired or will expire within ``refresh_margin`` seconds
        """
        if 'expires_at' not in token_info:
            return True
        return time.time() >= (token_info['expires_at'] - self.refresh_margin)

    def _build_token_info(self, token_data: Dict[str, Any], previous_refresh: Optional[str] = None) -> Dict[str, Any]:
        """Normalize a token endpoint response into the stored structure"""
        expires_in = token_data.get('expires_in', 3600)
        return {
            'access_token': token_data['access_token'],
            'token_type': token_data.get('token_type', 'Bearer'),
            'expires_in': expires_in,
            'expires_at': int(time.time()) + expires_in,
            # Spotify may or may not rotate the refresh token
            'refresh_token': token_data.get('refresh_token') or previous_refresh,
            'scope': token_data.get('scope', self.scope)
        }

    def _refresh_token(self, token_info: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Refresh expired access token using refresh token

        Args:
            token_info: Current token information containing refresh_token

        Returns:
            Updated token information dictionary if refresh successful, None otherwise
        """
        if not token_info.get('refresh_token'):
            return None

        data = {
            'grant_type': 'refresh_token',
            'refresh_token': token_info['refresh_token'],
            'client_id': self.client_id,
            'client_secret': self.client_secret
        }

        try:
            response = requests.post(
                self.token_url,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                data=data,
                timeout=self.settings.network.request_timeout
            )
            response.raise_for_status()
            updated_token = self._build_token_info(response.json(), token_info['refresh_token'])
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.warning(f"Failed to refresh token: {e}")
            return None

        self._save_token(updated_token)
        logger.debug(f"Access token refreshed, expires in {updated_token['expires_in']}s")
        return updated_token

    def _exchange_code_for_token(self, code: str) -> Optional[Dict[str, Any]]:
        """
        Exchange authorization code for access and refresh tokens

        Args:
            code: Authorization code from Spotify callback

        Returns:
            Complete token information dictionary if successful, None if failed
        """
        data = {
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': self.redirect_uri,  # Must match authorization request
            'client_id': self.client_id,
            'client_secret': self.client_secret
        }

        try:
            response = requests.post(
                self.token_url,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                data=data,
                timeout=self.settings.network.request_timeout
            )
            response.raise_for_status()
            return self._build_token_info(response.json())
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.error(f"Error exchanging code for token: {e}")
            return None

    def _authorize_new(self, timeout: float = 300.0) -> Optional[Dict[str, Any]]:
        """
        Run the interactive authorization code flow

        Starts a one-shot callback server on the redirect URI's host and port,
        opens the consent page in the browser and waits for Spotify to redirect
        back with a code.

        Args:
            timeout: Seconds to wait for the user to finish the consent page

        Returns:
            Token information dictionary if authorization succeeded, None otherwise
        """
        if not self.client_id or not self.client_secret:
            logger.error("Spotify client_id and client_secret are not configured")
            return None

        redirect = urllib.parse.urlparse(self.redirect_uri)
        host = redirect.hostname or '127.0.0.1'
        port = redirect.port or 80
        state = secrets.token_urlsafe(16)

        try:
            server = HTTPServer((host, port), CallbackHandler)
        except OSError as e:
            logger.error(f"Could not start callback server on {host}:{port}: {e}")
            return None

        server.auth_code = None
        server.auth_state = None
        server.auth_error = None
        server.callback_received = threading.Event()

        server_thread = threading.Thread(target=server.serve_forever, daemon=True)
        server_thread.start()

        try:
            auth_url = self.build_authorize_url(state)
            logger.console_info("Opening Spotify login in your browser...")
            logger.info(f"Authorization URL: {auth_url}")
            webbrowser.open(auth_url)

            if not server.callback_received.wait(timeout):
                logger.error("Login timed out")
                return None
        finally:
            server.shutdown()
            server.server_close()

        if server.auth_error:
            logger.error(f"Authorization denied: {server.auth_error}")
            return None
        if server.auth_state != state:
            logger.error("Authorization state mismatch, ignoring callback")
            return None

        token_info = self._exchange_code_for_token(server.auth_code)
        if token_info:
            self._save_token(token_info)
        return token_info

    def refresh_stored_token(self) -> Optional[Dict[str, Any]]:
        """
        Force a refresh of the stored session regardless of its expiry

        Returns:
            Refreshed token information, None if there is no session or the refresh failed
        """
        token_info = self._token_info or self._load_token()
        if not token_info:
            return None
        self._token_info = self._refresh_token(token_info)
        return self._token_info

    def get_token_info(self, interactive: bool = True) -> Optional[Dict[str, Any]]:
        """
        Get valid token information, refreshing as needed

        Args:
            interactive: Start the browser login flow when no usable token exists

        Returns:
            Token information dictionary, None when there is no valid session

        Flow:
        1. Load existing token from storage if not already cached
        2. Refresh it if it expires within the safety margin
        3. If refresh fails or no token is stored, optionally start new authorization
        """
        if not self._token_info:
            self._token_info = self._load_token()

        if self._token_info and self._is_token_expired(self._token_info):
            logger.debug("Access token expiring, refreshing...")
            self._token_info = self._refresh_token(self._token_info)

        if not self._token_info and interactive:
            logger.info("No valid token found, starting authorization...")
            self._token_info = self._authorize_new()

        return self._token_info

    def get_valid_token(self, interactive: bool = True) -> Optional[str]:
        """Valid access token string, or None if authentication failed"""
        token_info = self.get_token_info(interactive=interactive)
        return token_info['access_token'] if token_info else None

    def get_spotify_client(self, interactive: bool = False) -> Optional[spotipy.Spotify]:
        """
        Get authenticated spotipy client instance

        Caches the client and updates its token after refreshes.

        Returns:
            Authenticated Spotify client if successful, None if not logged in
        """
        token = self.get_valid_token(interactive=interactive)
        if not token:
            return None

        if not self._spotify_client:
            self._spotify_client = spotipy.Spotify(
                auth=token,
                requests_timeout=self.settings.network.request_timeout
            )
        else:
            self._spotify_client.set_auth(token)

        return self._spotify_client

    def has_stored_session(self) -> bool:
        """True if a refreshable token is stored locally (no network access)"""
        token_info = self._token_info or self._load_token()
        return bool(token_info and token_info.get('refresh_token'))

    def is_authenticated(self) -> bool:
        """
        Check if user is currently authenticated with valid credentials

        Makes a lightweight API call (current_user) to verify the session.
        """
        try:
            client = self.get_spotify_client()
            if client:
                client.current_user()
                return True
        except (spotipy.SpotifyException, requests.RequestException) as e:
            logger.debug(f"Authentication check failed: {e}")
        return False

    def revoke_token(self) -> None:
        """
        Delete stored credentials and cached clients (logout)

        Note:
            Tokens remain valid on Spotify's side until they naturally expire.
        """
        if self.token_file.exists():
            try:
                self.token_file.unlink()
            except OSError as e:
                logger.warning(f"Failed to delete token file: {e}")

        self._token_info = None
        self._spotify_client = None

    def get_user_info(self) -> Optional[Dict[str, Any]]:
        """
        Get current authenticated user's profile information

        Returns:
            User profile dictionary if successful, None if failed
        """
        try:
            client = self.get_spotify_client()
            if client:
                return client.current_user()
        except (spotipy.SpotifyException, requests.RequestException) as e:
            logger.warning(f"Error getting user info: {e}")
        return None


class TokenProvider:
    """
    Async session/token provider for the playback engine

    Answers ``get_valid_token()`` from memory while the cached token is valid
    for longer than the refresh margin (3 minutes by default). Otherwise the
    blocking ``SpotifyAuth`` refresh runs in the default executor. Concurrent
    callers (a poll tick and a user command) share one refresh.

    Never starts the interactive login flow: without a stored session it
    simply returns None.
    """

    def __init__(
        self,
        auth: Optional[SpotifyAuth] = None,
        refresh_margin: Optional[float] = None,
        clock: Callable[[], float] = time.time
    ):
        self.auth = auth or get_auth()
        self.refresh_margin = (
            refresh_margin if refresh_margin is not None
            else get_settings().playback.token_refresh_margin
        )
        self._clock = clock
        self._token_info: Optional[Dict[str, Any]] = None
        self._refresh_lock = asyncio.Lock()

    def _cached_token(self) -> Optional[str]:
        info = self._token_info
        if info and info.get('expires_at', 0) - self._clock() > self.refresh_margin:
            return info['access_token']
        return None

    async def get_valid_token(self) -> Optional[str]:
        """
        Return a currently valid bearer token

        Returns:
            Access token, or None when there is no valid session
        """
        token = self._cached_token()
        if token:
            return token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            token = self._cached_token()
            if token:
                return token

            loop = asyncio.get_running_loop()
            self._token_info = await loop.run_in_executor(None, self.auth.get_token_info, False)

        if not self._token_info:
            logger.debug("No valid Spotify session")
            return None
        return self._token_info['access_token']

    def clear(self) -> None:
        """Forget the cached token (logout)"""
        self._token_info = None


# Global authentication instance management
_auth_instance: Optional[SpotifyAuth] = None


def get_auth() -> SpotifyAuth:
    """
    Get the global authentication instance (singleton pattern)

    Returns:
        Global SpotifyAuth instance
    """
    global _auth_instance
    if not _auth_instance:
        _auth_instance = SpotifyAuth()
    return _auth_instance


def reset_auth() -> None:
    """
    Reset the global authentication instance

    This does not revoke tokens or delete stored credentials - it only
    clears the in-memory instance.
    """
    global _auth_instance
    _auth_instance = None
