"""Test access token caching"""

import base64
import threading
import time
from unittest.mock import Mock

import pytest
import requests
import responses

from aguava_api.core.config import SpotifyConfig
from aguava_api.core.exceptions import SpotifyAuthError
from aguava_api.spotify.client import SpotifyClient
from aguava_api.spotify.auth import TokenCache
from aguava_api.spotify.models import Credential

from conftest import TOKEN_URL


def add_token_response(token="token-1", expires_in=3600, status=200):
    responses.add(
        responses.POST,
        TOKEN_URL,
        json={"access_token": token, "token_type": "Bearer", "expires_in": expires_in},
        status=status,
    )


class TestCredential:
    """Test credential validity window"""

    def test_valid_before_margin(self):
        """Test credential valid before the safety margin"""
        credential = Credential(token="abc", expires_at=1000)
        assert credential.is_valid(now=939)

    def test_stale_at_margin(self):
        """Test credential stale from the safety margin on"""
        credential = Credential(token="abc", expires_at=1000)
        assert not credential.is_valid(now=940)
        assert not credential.is_valid(now=1200)

    def test_empty_token_never_valid(self):
        """Test empty token is never valid"""
        assert not Credential(token="", expires_at=10_000).is_valid(now=0)


class TestTokenCache:
    """Test TokenCache.get_token"""

    @responses.activate
    def test_fetches_with_basic_auth(self, clock):
        """Test token request uses Basic auth and client_credentials"""
        add_token_response()
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        token = cache.get_token("my_id", "my_secret")

        assert token == "token-1"
        assert len(responses.calls) == 1
        request = responses.calls[0].request
        expected = base64.b64encode(b"my_id:my_secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.body == "grant_type=client_credentials"
        assert cache.credential == Credential(token="token-1", expires_at=clock.now + 3600)

    @responses.activate
    def test_cache_hit_makes_no_request(self, clock):
        """Test a valid cached token makes no request"""
        add_token_response()
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        first = cache.get_token("id", "secret")
        clock.advance(3600 - 61)
        second = cache.get_token("id", "secret")

        assert first == second
        assert len(responses.calls) == 1

    @responses.activate
    def test_refresh_after_margin(self, clock):
        """Test token refreshed once inside the safety margin"""
        add_token_response(token="token-1")
        add_token_response(token="token-2")
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        cache.get_token("id", "secret")
        clock.advance(3600 - 60)
        refreshed = cache.get_token("id", "secret")

        assert refreshed == "token-2"
        assert len(responses.calls) == 2

        # New token is cached again
        cache.get_token("id", "secret")
        assert len(responses.calls) == 2

    @responses.activate
    def test_non_200_keeps_previous_credential(self, clock):
        """Test a failed refresh keeps the previous credential"""
        add_token_response(token="token-1")
        responses.add(responses.POST, TOKEN_URL, json={"error": "invalid_client"}, status=400)
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        cache.get_token("id", "secret")
        previous = cache.credential
        clock.advance(4000)

        with pytest.raises(SpotifyAuthError) as exc_info:
            cache.get_token("id", "secret")

        assert exc_info.value.status_code == 400
        assert exc_info.value.is_auth_error
        assert cache.credential is previous

    @responses.activate
    def test_empty_access_token_rejected(self, clock):
        """Test empty access token raises SpotifyAuthError"""
        add_token_response(token="")
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        with pytest.raises(SpotifyAuthError, match="empty access token"):
            cache.get_token("id", "secret")
        assert cache.credential is None

    @responses.activate
    def test_unparsable_body_rejected(self, clock):
        """Test unparsable token response raises SpotifyAuthError"""
        responses.add(responses.POST, TOKEN_URL, body="<html>oops</html>", status=200)
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        with pytest.raises(SpotifyAuthError, match="parse"):
            cache.get_token("id", "secret")
        assert cache.credential is None

    @responses.activate
    def test_network_failure_rejected(self, clock):
        """Test network failure raises SpotifyAuthError"""
        responses.add(responses.POST, TOKEN_URL, body=requests.ConnectionError("refused"))
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        with pytest.raises(SpotifyAuthError) as exc_info:
            cache.get_token("id", "secret")
        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    @responses.activate
    def test_missing_credentials_skip_request(self, clock):
        """Test missing credentials fail without a request"""
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        with pytest.raises(SpotifyAuthError, match="not configured"):
            cache.get_token("", "")
        assert len(responses.calls) == 0

    @responses.activate
    def test_invalidate_forces_refetch(self, clock):
        """Test invalidate drops the cached token"""
        add_token_response(token="token-1")
        add_token_response(token="token-2")
        cache = TokenCache(token_url=TOKEN_URL, clock=clock)

        cache.get_token("id", "secret")
        cache.invalidate()

        assert cache.credential is None
        assert cache.get_token("id", "secret") == "token-2"

    def test_concurrent_cold_cache_single_refresh(self):
        """Concurrent callers on a cold cache share one token request"""
        calls = []
        calls_lock = threading.Lock()

        def slow_post(url, **kwargs):
            with calls_lock:
                calls.append(url)
            time.sleep(0.05)
            response = Mock(status_code=200)
            response.json.return_value = {"access_token": "shared", "expires_in": 3600}
            return response

        session = Mock()
        session.post.side_effect = slow_post
        cache = TokenCache(token_url=TOKEN_URL, session=session)

        barrier = threading.Barrier(8)
        tokens = []

        def worker():
            barrier.wait()
            tokens.append(cache.get_token("id", "secret"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert tokens == ["shared"] * 8

    def test_default_token_timeout(self):
        """Test token requests use the default 10 second timeout"""
        session = Mock()
        session.post.return_value.status_code = 200
        session.post.return_value.json.return_value = {"access_token": "t", "expires_in": 3600}
        client = SpotifyClient.from_config(
            SpotifyConfig(client_id="id", client_secret="secret"), session=session
        )

        assert client.access_token("id", "secret") == "t"
        assert session.post.call_args.kwargs["timeout"] == 10.0
        assert session.post.call_args.args[0] == "https://accounts.spotify.com/api/token"
