"""
Catalog module for aguava-api.

The static song catalog and the functions that annotate it with Spotify
popularity and sort it for the API response.
"""

from aguava_api.catalog.assembler import (
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    PLACEHOLDER_PREFIX,
    SORT_FIELDS,
    apply_popularity,
    assemble_songs,
    eligible_track_ids,
    sort_songs,
)
from aguava_api.catalog.loader import BUNDLED_CATALOG, load_catalog
from aguava_api.catalog.models import Song

__all__ = [
    "Song",
    "load_catalog",
    "BUNDLED_CATALOG",
    "eligible_track_ids",
    "apply_popularity",
    "sort_songs",
    "assemble_songs",
    "PLACEHOLDER_PREFIX",
    "SORT_FIELDS",
    "DEFAULT_SORT_BY",
    "DEFAULT_SORT_ORDER",
]
