"""
Merging fetched popularity onto the catalog and sorting it.

All functions return new lists; the loaded catalog is never modified.
"""

from dataclasses import replace
from operator import attrgetter
from typing import Iterable, Mapping, Sequence

from aguava_api.catalog.models import Song


# Catalog IDs starting with this prefix are unfilled template entries
PLACEHOLDER_PREFIX = "YOUR_REAL_"

# Public sortBy value -> Song attribute
SORT_FIELDS = {
    "streams": "streams",
    "key": "key",
    "bpm": "bpm",
    "popularity": "popularity",
    "name": "name",
}

DEFAULT_SORT_BY = "streams"
DEFAULT_SORT_ORDER = "desc"


def eligible_track_ids(songs: Iterable[Song]) -> list[str]:
    """
    IDs worth sending to Spotify: non-empty, not placeholders, first occurrence only.
    """
    ids = (
        song.spotify_id for song in songs
        if song.spotify_id and not song.spotify_id.startswith(PLACEHOLDER_PREFIX)
    )
    return list(dict.fromkeys(ids))


def apply_popularity(songs: Iterable[Song], popularity: Mapping[str, int]) -> list[Song]:
    """
    Copy the catalog with popularity filled in.

    Songs without a Spotify ID, or whose ID is absent from `popularity`,
    get 0.
    """
    return [
        replace(song, popularity=popularity.get(song.spotify_id, 0) if song.spotify_id else 0)
        for song in songs
    ]


def sort_songs(
    songs: Sequence[Song],
    sort_by: str,
    sort_order: str = DEFAULT_SORT_ORDER
) -> list[Song]:
    """
    Sort songs by a public field name.

    Args:
        songs: Songs to sort.
        sort_by: One of streams, key, bpm, popularity, name. Any other value
                 leaves the original order.
        sort_order: "asc" for ascending; anything else sorts descending.

    Returns:
        A new list. The sort is stable, so ties keep catalog order.
    """
    attribute = SORT_FIELDS.get(sort_by)
    if attribute is None:
        return list(songs)
    return sorted(songs, key=attrgetter(attribute), reverse=sort_order != "asc")


def assemble_songs(
    catalog: Sequence[Song],
    popularity: Mapping[str, int],
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER
) -> list[Song]:
    """Apply popularity and sort: the response body for GET /songs."""
    return sort_songs(apply_popularity(catalog, popularity), sort_by, sort_order)
