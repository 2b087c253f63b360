"""
Flask application exposing the songs endpoint.

Routes:
    GET /songs?sortBy=<field>&sortOrder=<asc|desc>
        Catalog with live popularity. sortBy defaults to streams,
        sortOrder to desc.
    GET /health
        Liveness check.

Errors never include credentials or upstream bodies:
    token failure          -> 500 {"error": "Could not authenticate with Spotify"}
    other Spotify failure  -> 503 {"error": "Spotify service unavailable"}
"""

from flask import Flask, jsonify, request
from flask_cors import CORS

from aguava_api.catalog.assembler import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER
from aguava_api.catalog.loader import load_catalog
from aguava_api.core.config import Config
from aguava_api.core.exceptions import AguavaError, SpotifyAuthError
from aguava_api.core.logger import get_logger
from aguava_api.service import SongsService
from aguava_api.spotify.client import SpotifyClient

logger = get_logger(__name__)


CORS_MAX_AGE = 12 * 60 * 60


def build_service(config: Config) -> SongsService:
    """
    Create the SongsService and its SpotifyClient from configuration.

    Raises:
        CatalogError: If the catalog cannot be loaded.
    """
    client = SpotifyClient.from_config(config.spotify)
    catalog = load_catalog(config.catalog.path)
    return SongsService(
        client,
        catalog,
        client_id=config.spotify.client_id,
        client_secret=config.spotify.client_secret
    )


def create_app(config: Config | None = None, service: SongsService | None = None) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Application configuration. Defaults are used when None.
        service: Prebuilt SongsService (tests). Built from config when None.

    Returns:
        The configured Flask app.
    """
    config = config or Config()
    if service is None:
        service = build_service(config)

    app = Flask(__name__)
    # Keep Song.to_dict() field order in responses
    app.json.sort_keys = False
    app.extensions["songs_service"] = service

    CORS(
        app,
        origins=list(config.server.cors_origins),
        methods=["GET", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept"],
        supports_credentials=True,
        max_age=CORS_MAX_AGE
    )

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "healthy"})

    @app.route("/songs", methods=["GET"])
    def get_songs():
        sort_by = request.args.get("sortBy", DEFAULT_SORT_BY)
        sort_order = request.args.get("sortOrder", DEFAULT_SORT_ORDER)

        try:
            songs = service.list_songs(sort_by=sort_by, sort_order=sort_order)
        except SpotifyAuthError as e:
            logger.error(f"Error getting Spotify access token: {e}")
            return jsonify({"error": "Could not authenticate with Spotify"}), 500
        except AguavaError as e:
            logger.error(f"Error building songs response: {e}")
            return jsonify({"error": "Spotify service unavailable"}), 503

        return jsonify([song.to_dict() for song in songs])

    return app
