"""
Song catalog loading.

The catalog is a YAML list of songs. A copy ships with the package
(songs.yaml next to this module); a different file can be configured with
catalog.path in config.yaml.

Example entry:
    - name: "Payday"
      streams: 556000
      key: "F"
      bpm: 126
      spotify_id: "4gpOjiawQcmFqRSwtp7Ppt"  # optional
"""

from pathlib import Path
from typing import Any

import yaml

from aguava_api.catalog.models import Song
from aguava_api.core.exceptions import CatalogError
from aguava_api.core.logger import get_logger

logger = get_logger(__name__)


BUNDLED_CATALOG = Path(__file__).with_name("songs.yaml")


def load_catalog(path: Path | None = None) -> list[Song]:
    """
    Load and validate the song catalog.

    Args:
        path: YAML catalog file. None loads the bundled catalog.

    Returns:
        Songs in file order, popularity 0.

    Raises:
        CatalogError: If the file is missing, is not valid YAML, is not a
                      list, or an entry is missing a field or has a bad type.
    """
    catalog_path = path or BUNDLED_CATALOG

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise CatalogError(
            f"Catalog file not found: {catalog_path}",
            details={"file_path": str(catalog_path)}
        ) from e
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(
            f"Failed to read catalog file: {e}",
            details={"file_path": str(catalog_path), "original_error": str(e)}
        ) from e

    if raw is None:
        raw = []
    if not isinstance(raw, list):
        raise CatalogError(
            "Catalog file must contain a YAML list of songs",
            details={"file_path": str(catalog_path)}
        )

    songs = [_parse_song(entry, index) for index, entry in enumerate(raw)]
    logger.debug(f"Loaded {len(songs)} songs from {catalog_path}")
    return songs


def _parse_song(entry: Any, index: int) -> Song:
    if not isinstance(entry, dict):
        raise CatalogError(
            f"Catalog entry {index} must be a dictionary",
            details={"index": index}
        )

    for field_name, field_type in (("name", str), ("streams", int), ("key", str), ("bpm", int)):
        value = entry.get(field_name)
        if value is None:
            raise CatalogError(
                f"Catalog entry {index} is missing '{field_name}'",
                details={"index": index, "field": field_name}
            )
        if isinstance(value, bool) or not isinstance(value, field_type):
            raise CatalogError(
                f"Catalog entry {index}: '{field_name}' must be {field_type.__name__}",
                details={"index": index, "field": field_name, "value": value}
            )

    spotify_id = entry.get("spotify_id") or ""
    if not isinstance(spotify_id, str):
        raise CatalogError(
            f"Catalog entry {index}: 'spotify_id' must be a string",
            details={"index": index, "field": "spotify_id"}
        )

    return Song(
        name=entry["name"],
        streams=entry["streams"],
        key=entry["key"],
        bpm=entry["bpm"],
        spotify_id=spotify_id.strip()
    )
