"""
Songs service: the catalog annotated with live Spotify popularity.

Request flow:
    1. Get an access token (cached)         -> SpotifyAuthError on failure
    2. Collect eligible Spotify IDs from the catalog
    3. Fetch popularity in batches of 50    -> failed batches are skipped
    4. Fill in popularity (0 when unknown) and sort
"""

from aguava_api.catalog.assembler import (
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    assemble_songs,
    eligible_track_ids,
)
from aguava_api.catalog.models import Song
from aguava_api.core.logger import get_logger
from aguava_api.spotify.client import SpotifyClient

logger = get_logger(__name__)


class SongsService:
    """
    Builds the /songs response.

    Attributes:
        client: Shared SpotifyClient.
        catalog: Static song catalog (never modified).
        client_id: Spotify client ID (may be empty).
        client_secret: Spotify client secret (may be empty).
    """

    def __init__(
        self,
        client: SpotifyClient,
        catalog: list[Song],
        client_id: str,
        client_secret: str
    ) -> None:
        self.client = client
        self.catalog = tuple(catalog)
        self.client_id = client_id
        self.client_secret = client_secret

    def list_songs(
        self,
        sort_by: str = DEFAULT_SORT_BY,
        sort_order: str = DEFAULT_SORT_ORDER
    ) -> list[Song]:
        """
        Return the catalog with current popularity, sorted.

        Args:
            sort_by: streams, key, bpm, popularity or name. Unknown values
                     keep catalog order.
            sort_order: "asc" or "desc".

        Raises:
            SpotifyAuthError: If no access token can be obtained.
        """
        access_token = self.client.access_token(self.client_id, self.client_secret)

        track_ids = eligible_track_ids(self.catalog)
        report = self.client.track_popularity(track_ids, access_token)

        songs = assemble_songs(self.catalog, report.popularity, sort_by, sort_order)

        found = sum(1 for song in self.catalog if song.spotify_id in report.popularity)
        logger.info(f"Successfully mapped popularity for {found} tracks.")
        return songs
