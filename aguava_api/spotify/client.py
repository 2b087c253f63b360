"""
Spotify API client for aguava-api.

SpotifyClient bundles the three pieces needed to annotate the catalog:

    TokenCache          - client credentials token, refreshed under one lock
    RequestExecutor     - requests.Session with 429 retry/backoff
    TrackDetailsFetcher - batched GET /tracks popularity lookup

One instance is created at application startup and shared by all request
handlers; nothing in this module keeps process-wide state.

Usage:
    from aguava_api.spotify.client import SpotifyClient

    with SpotifyClient.from_config(config.spotify) as client:
        token = client.access_token(client_id, client_secret)
        report = client.track_popularity(track_ids, token)
"""

import time
from typing import Any, Callable, Sequence

import requests

from aguava_api.core.config import SpotifyConfig
from aguava_api.spotify.auth import TokenCache
from aguava_api.spotify.fetcher import TrackDetailsFetcher
from aguava_api.spotify.models import FetchReport
from aguava_api.spotify.retry import RequestExecutor, RetryPolicy


class SpotifyClient:
    """
    Spotify Web API client with token caching and rate limit handling.

    Attributes:
        tokens: Shared TokenCache.
        executor: Shared RequestExecutor.
        fetcher: TrackDetailsFetcher built on the executor.
        batch_workers: Batches fetched concurrently by track_popularity().

    Thread Safety:
        All methods may be called from concurrent request handlers.
        requests.Session is shared for connection pooling.
    """

    def __init__(
        self,
        tokens: TokenCache,
        executor: RequestExecutor,
        fetcher: TrackDetailsFetcher,
        batch_workers: int = 1
    ) -> None:
        self.tokens = tokens
        self.executor = executor
        self.fetcher = fetcher
        self.batch_workers = batch_workers

    @classmethod
    def from_config(
        cls,
        config: SpotifyConfig,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time
    ) -> "SpotifyClient":
        """
        Build a client from the spotify section of the configuration.

        Args:
            config: Spotify configuration.
            session: Optional session shared by token and API requests.
            sleep: Sleep function used between rate limited attempts.
            clock: Wall clock used for token expiry.
        """
        tokens = TokenCache(
            token_url=config.token_url,
            timeout=config.token_timeout,
            session=session,
            clock=clock
        )
        executor = RequestExecutor(
            session=session,
            policy=RetryPolicy(max_attempts=config.max_retries),
            timeout=config.request_timeout,
            sleep=sleep
        )
        fetcher = TrackDetailsFetcher(executor, api_url=config.api_url)
        return cls(tokens, executor, fetcher, batch_workers=config.batch_workers)

    def __enter__(self) -> "SpotifyClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.tokens.close()
        self.executor.close()

    def access_token(self, client_id: str, client_secret: str) -> str:
        """
        Get a valid access token (cached when possible).

        Raises:
            SpotifyAuthError: If no token can be obtained.
        """
        return self.tokens.get_token(client_id, client_secret)

    def track_popularity(self, track_ids: Sequence[str], access_token: str) -> FetchReport:
        """
        Fetch popularity for any number of tracks, 50 per request.

        Failed batches are logged and reported, never raised.
        """
        return self.fetcher.fetch_popularity(
            track_ids, access_token, max_workers=self.batch_workers
        )
