"""
aguava-api: a song catalog annotated with live Spotify popularity.

One HTTP endpoint returns a fixed catalog of songs (name, streams, key,
bpm) together with each track's current Spotify popularity, sorted by a
caller-selected field.

Architecture:
    core/       - Configuration, logging, exceptions
    spotify/    - Spotify client
                  - TokenCache: client credentials token, one refresh at a time
                  - RequestExecutor: 429 retry with Retry-After / linear backoff
                  - TrackDetailsFetcher: popularity in batches of 50
    catalog/    - Song model, YAML catalog loader, merge and sort
    service.py  - SongsService: token -> batches -> merged, sorted catalog
    web/        - Flask application (GET /songs, GET /health)
    cli.py      - Command-line interface (aguava serve / aguava songs)

Usage:
    Command Line:
        aguava serve
        aguava songs --sort-by popularity

    Python API:
        from aguava_api.core import load_config
        from aguava_api.web import create_app

        app = create_app(load_config())
"""

__version__ = "0.1.0"
__author__ = "aguava team"
