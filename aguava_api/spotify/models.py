"""
Data models for the Spotify client.

Design Decisions:
    - Credential is frozen: the token cache replaces it as a whole,
      never field by field
    - FetchReport keeps per-batch failures next to the merged result
"""

from dataclasses import dataclass, field

from aguava_api.core.exceptions import SpotifyError


# Seconds subtracted from a token's expiry before it is considered stale
TOKEN_SAFETY_MARGIN = 60


@dataclass(frozen=True)
class Credential:
    """
    A client credentials access token and its absolute expiry.

    Attributes:
        token: Opaque bearer token string.
        expires_at: Expiry as a Unix timestamp (seconds).
    """
    token: str
    expires_at: float

    def is_valid(self, now: float, margin: float = TOKEN_SAFETY_MARGIN) -> bool:
        """
        Check whether the token can still be used.

        Args:
            now: Current Unix timestamp.
            margin: Seconds before expiry at which the token counts as stale.

        Returns:
            True if the token is non-empty and now < expires_at - margin.
        """
        return bool(self.token) and now < self.expires_at - margin


@dataclass(frozen=True)
class BatchFailure:
    """
    A batch of track IDs whose popularity lookup failed.

    Attributes:
        track_ids: The IDs that were in the failed request.
        error: The error raised for the request.
    """
    track_ids: tuple[str, ...]
    error: SpotifyError


@dataclass
class FetchReport:
    """
    Result of fetching popularity for a list of track IDs in batches.

    Attributes:
        popularity: Merged map of track ID to popularity for every batch
                    that succeeded. IDs Spotify did not return are absent.
        failures: One entry per failed batch, in completion order.
        batches: Number of batches attempted.
    """
    popularity: dict[str, int] = field(default_factory=dict)
    failures: list[BatchFailure] = field(default_factory=list)
    batches: int = 0

    @property
    def failed_batches(self) -> int:
        return len(self.failures)

    @property
    def complete(self) -> bool:
        """True if every batch succeeded."""
        return not self.failures
