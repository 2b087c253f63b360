"""
Spotify module for aguava-api.

Provides the token cache, the rate-limit aware request executor and the
batched popularity fetcher, plus the SpotifyClient that wires them together.
"""

from aguava_api.spotify.auth import TokenCache
from aguava_api.spotify.client import SpotifyClient
from aguava_api.spotify.fetcher import MAX_BATCH_SIZE, TrackDetailsFetcher, iter_batches
from aguava_api.spotify.models import (
    TOKEN_SAFETY_MARGIN,
    BatchFailure,
    Credential,
    FetchReport,
)
from aguava_api.spotify.retry import RequestExecutor, RetryPolicy

__all__ = [
    "SpotifyClient",
    "TokenCache",
    "RequestExecutor",
    "RetryPolicy",
    "TrackDetailsFetcher",
    "iter_batches",
    "MAX_BATCH_SIZE",
    "TOKEN_SAFETY_MARGIN",
    "Credential",
    "BatchFailure",
    "FetchReport",
]
