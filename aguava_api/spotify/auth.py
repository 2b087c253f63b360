"""
Client credentials token management for the Spotify Web API.

TokenCache holds one access token plus its expiry and hands it out to
every request handler. Refreshing is serialized: the whole
check-and-maybe-refresh sequence runs under a single lock, so concurrent
callers on a cold or stale cache trigger exactly one token request and
the rest wait for its result.

Token lifecycle:
    EMPTY -> VALID      first successful fetch
    VALID -> VALID      cache hit, no network call
    VALID -> STALE      now >= expires_at - 60s
    STALE -> VALID      refresh
    A failed fetch leaves the previous state untouched.

Usage:
    from aguava_api.spotify.auth import TokenCache

    tokens = TokenCache()  # construct once, share between request handlers
    token = tokens.get_token(client_id, client_secret)
"""

import threading
import time
from typing import Callable

import requests

from aguava_api.core.config import DEFAULT_TOKEN_URL
from aguava_api.core.exceptions import SpotifyAuthError
from aguava_api.core.logger import get_logger
from aguava_api.spotify.models import TOKEN_SAFETY_MARGIN, Credential

logger = get_logger(__name__)


class TokenCache:
    """
    Thread-safe cache for a single client credentials access token.

    Attributes:
        _token_url: Accounts service token endpoint.
        _timeout: Timeout in seconds for the token request.
        _margin: Seconds before expiry at which a token counts as stale.
        _session: requests.Session used for the token request.
        _clock: Returns the current Unix time; injectable for tests.
        _credential: Current Credential, or None when EMPTY.
        _lock: Guards the check-and-refresh sequence.
    """

    def __init__(
        self,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        margin: float = TOKEN_SAFETY_MARGIN
    ) -> None:
        self._token_url = token_url
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._clock = clock
        self._margin = margin
        self._credential: Credential | None = None
        self._lock = threading.Lock()

    @property
    def credential(self) -> Credential | None:
        """The currently cached credential, or None if nothing was fetched yet."""
        return self._credential

    def get_token(self, client_id: str, client_secret: str) -> str:
        """
        Return a usable access token, fetching a new one if needed.

        Args:
            client_id: Spotify application client ID.
            client_secret: Spotify application client secret.

        Returns:
            The bearer token string.

        Raises:
            SpotifyAuthError: If credentials are missing, the token request
                              fails, or the response is unusable.

        Behavior:
            1. Acquire the lock (held for the whole sequence)
            2. Cached token valid (now < expires_at - margin): return it
            3. Otherwise POST grant_type=client_credentials with Basic auth
            4. Store the new Credential and return its token
        """
        with self._lock:
            credential = self._credential
            if credential is not None and credential.is_valid(self._clock(), self._margin):
                return credential.token

            self._credential = self._fetch_credential(client_id, client_secret)
            return self._credential.token

    def invalidate(self) -> None:
        """Drop the cached credential so the next get_token() refetches."""
        with self._lock:
            self._credential = None

    def _fetch_credential(self, client_id: str, client_secret: str) -> Credential:
        """
        Perform the client credentials exchange.

        Raises:
            SpotifyAuthError: On missing credentials, network failure,
                              non-200 status, unparsable body or empty token.
        """
        if not client_id or not client_secret:
            raise SpotifyAuthError(
                "Spotify client credentials are not configured",
                details={"token_url": self._token_url}
            )

        logger.debug("Requesting new Spotify access token")

        try:
            # HTTPBasicAuth encodes base64(client_id:client_secret)
            response = self._session.post(
                self._token_url,
                auth=(client_id, client_secret),
                data={"grant_type": "client_credentials"},
                timeout=self._timeout
            )
        except requests.RequestException as e:
            raise SpotifyAuthError(
                f"Failed to execute token request: {e}",
                details={"token_url": self._token_url, "original_error": str(e)}
            ) from e

        if response.status_code != 200:
            raise SpotifyAuthError(
                f"Failed to fetch token: status {response.status_code}",
                details={"token_url": self._token_url, "body": response.text},
                status_code=response.status_code
            )

        try:
            payload = response.json()
            access_token = payload.get("access_token") or ""
            expires_in = int(payload.get("expires_in") or 0)
        except (ValueError, TypeError, AttributeError) as e:
            raise SpotifyAuthError(
                f"Failed to parse token response: {e}",
                details={"token_url": self._token_url, "body": response.text}
            ) from e

        if not isinstance(access_token, str) or not access_token:
            raise SpotifyAuthError(
                "Received empty access token",
                details={"token_url": self._token_url}
            )

        expires_at = self._clock() + expires_in
        logger.info(f"Obtained Spotify access token (expires in {expires_in}s)")
        return Credential(token=access_token, expires_at=expires_at)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()
