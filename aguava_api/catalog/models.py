"""
Song catalog data model.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Song:
    """
    Immutable catalog entry.

    Everything except popularity is static catalog data; popularity is
    filled in from Spotify on every request.

    Attributes:
        name: Track title. Example: "Payday"
        streams: Total stream count. Example: 556000
        key: Musical key. Example: "F#"
        bpm: Tempo in beats per minute. Example: 126
        spotify_id: Spotify track ID, or "" if the song is not on Spotify.
        popularity: Spotify popularity (0-100), 0 until fetched.
    """
    name: str
    streams: int
    key: str
    bpm: int
    spotify_id: str = ""
    popularity: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the public JSON field names."""
        return {
            "name": self.name,
            "streams": self.streams,
            "key": self.key,
            "bpm": self.bpm,
            "spotifyId": self.spotify_id,
            "popularity": self.popularity,
        }
