"""Test token storage, refresh and the async token provider"""

import asyncio
import json
import time
from unittest.mock import Mock, patch

import pytest
import requests

from djcompanion.config.auth import SpotifyAuth, TokenProvider


NOW = 1_700_000_000.0


def token_info(access_token="fresh", expires_in=3600):
    return {
        'access_token': access_token,
        'refresh_token': 'refresh-me',
        'expires_at': NOW + expires_in,
    }


class TestTokenProvider:
    """Test TokenProvider"""

    @pytest.mark.asyncio
    async def test_refreshes_through_auth(self):
        auth = Mock()
        auth.get_token_info.return_value = token_info()
        provider = TokenProvider(auth=auth, refresh_margin=180, clock=lambda: NOW)

        assert await provider.get_valid_token() == "fresh"
        auth.get_token_info.assert_called_once_with(False)

    @pytest.mark.asyncio
    async def test_cached_token_is_reused(self):
        auth = Mock()
        auth.get_token_info.return_value = token_info()
        provider = TokenProvider(auth=auth, refresh_margin=180, clock=lambda: NOW)

        await provider.get_valid_token()
        await provider.get_valid_token()

        assert auth.get_token_info.call_count == 1

    @pytest.mark.asyncio
    async def test_token_inside_margin_is_refreshed(self):
        """Test tokens expiring within three minutes are refreshed"""
        auth = Mock()
        auth.get_token_info.side_effect = [token_info("old", expires_in=120), token_info("new")]
        provider = TokenProvider(auth=auth, refresh_margin=180, clock=lambda: NOW)

        assert await provider.get_valid_token() == "old"
        assert await provider.get_valid_token() == "new"

    @pytest.mark.asyncio
    async def test_no_session(self):
        auth = Mock()
        auth.get_token_info.return_value = None
        provider = TokenProvider(auth=auth, refresh_margin=180, clock=lambda: NOW)

        assert await provider.get_valid_token() is None

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_refresh(self):
        auth = Mock()

        def slow_refresh(interactive):
            time.sleep(0.02)
            return token_info()

        auth.get_token_info.side_effect = slow_refresh
        provider = TokenProvider(auth=auth, refresh_margin=180, clock=lambda: NOW)

        tokens = await asyncio.gather(provider.get_valid_token(), provider.get_valid_token())

        assert tokens == ["fresh", "fresh"]
        assert auth.get_token_info.call_count == 1

    @pytest.mark.asyncio
    async def test_clear(self):
        auth = Mock()
        auth.get_token_info.return_value = token_info()
        provider = TokenProvider(auth=auth, refresh_margin=180, clock=lambda: NOW)
        await provider.get_valid_token()

        provider.clear()
        await provider.get_valid_token()

        assert auth.get_token_info.call_count == 2


class TestSpotifyAuth:
    """Test token storage and refresh of SpotifyAuth"""

    @pytest.fixture
    def auth(self, test_settings):
        test_settings.spotify.client_id = "client"
        test_settings.spotify.client_secret = "secret"
        return SpotifyAuth(test_settings)

    def test_save_and_load_token(self, auth):
        auth._save_token(token_info())

        loaded = auth._load_token()

        assert loaded['access_token'] == "fresh"
        assert loaded['client_id'] == "client"
        assert auth.has_stored_session()

    def test_invalid_token_file(self, auth):
        auth.token_file.write_text(json.dumps({'access_token': 'x'}), encoding="utf-8")
        assert auth._load_token() is None

    def test_expiry_margin(self, auth):
        with patch('djcompanion.config.auth.time.time', return_value=NOW):
            assert not auth._is_token_expired({'expires_at': NOW + 600})
            assert auth._is_token_expired({'expires_at': NOW + 120})
            assert auth._is_token_expired({})

    def test_refresh_keeps_refresh_token(self, auth):
        response = Mock()
        response.json.return_value = {'access_token': 'new', 'expires_in': 3600}
        response.raise_for_status.return_value = None

        with patch('djcompanion.config.auth.requests.post', return_value=response) as post:
            refreshed = auth._refresh_token(token_info())

        assert refreshed['access_token'] == 'new'
        assert refreshed['refresh_token'] == 'refresh-me'
        assert post.call_args.kwargs['data']['grant_type'] == 'refresh_token'

    def test_refresh_failure(self, auth):
        with patch('djcompanion.config.auth.requests.post', side_effect=requests.ConnectionError("down")):
            assert auth._refresh_token(token_info()) is None

    def test_non_interactive_without_session(self, auth):
        with patch.object(auth, '_authorize_new') as authorize:
            assert auth.get_token_info(interactive=False) is None
        authorize.assert_not_called()

    def test_refresh_stored_token(self, auth):
        auth._save_token(token_info("stored"))

        with patch.object(auth, '_refresh_token', return_value=token_info("refreshed")) as refresh:
            result = auth.refresh_stored_token()

        refresh.assert_called_once()
        assert result['access_token'] == "refreshed"

    def test_revoke(self, auth):
        auth._save_token(token_info())

        auth.revoke_token()

        assert not auth.token_file.exists()
        assert not auth.has_stored_session()

    def test_authorize_url(self, auth):
        url = auth.build_authorize_url("state-123")

        assert url.startswith("https://accounts.spotify.com/authorize?")
        assert "state=state-123" in url
        assert "user-modify-playback-state" in url
