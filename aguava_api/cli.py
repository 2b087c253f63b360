"""
Command-line interface for aguava-api.

This module implements the CLI using Click (with rich-click for colored
help output).

Commands:
    aguava serve                        Run the HTTP API
    aguava songs                        Print the enriched catalog as JSON

Usage:
    # Start the API on the configured host/port (default localhost:8080)
    aguava serve

    # Override host and port
    aguava serve --host 0.0.0.0 --port 9000

    # One-off lookup, sorted by popularity ascending
    aguava songs --sort-by popularity --sort-order asc

Configuration:
    config.yaml in the current directory is optional (see core/config.py).
    SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET are read from the
    environment; a .env file in the current directory is loaded first.

Exit Codes:
    0   success
    1   configuration error
    2   catalog error
    3   Spotify error (songs command)
    4   other aguava-api error
"""

import json
import sys
from pathlib import Path
from typing import Optional

import rich_click as click
from dotenv import load_dotenv

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.MAX_WIDTH = 100

from aguava_api import __version__
from aguava_api.catalog.assembler import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, SORT_FIELDS
from aguava_api.core import (
    AguavaError,
    CatalogError,
    Config,
    ConfigError,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from aguava_api.web.app import build_service, create_app

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)
@click.version_option(__version__, prog_name="aguava-api")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path]) -> None:
    """
    aguava-api: song catalog with live Spotify popularity.
    """
    ctx.obj = _load_configuration(config_path)
    setup_logging(ctx.obj.logging.level, ctx.obj.logging.directory)


@cli.command()
@click.option("--host", type=str, default=None, help="Interface to bind")
@click.option("--port", type=int, default=None, help="Port to listen on")
@click.pass_obj
def serve(config: Config, host: Optional[str], port: Optional[int]) -> None:
    """
    Run the HTTP API.
    """
    host = host or config.server.host
    port = port or config.server.port

    try:
        app = create_app(config)
        if not config.spotify.has_credentials:
            logger.warning(
                "SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not set; "
                "/songs will fail to authenticate"
            )
        logger.info(f"aguava-api running on {host}:{port}")
        app.run(host=host, port=port, threaded=True)

    except CatalogError as e:
        click.echo(f"Catalog error: {e.message}", err=True)
        sys.exit(2)

    except AguavaError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    finally:
        shutdown_logging()


@cli.command()
@click.option(
    "--sort-by",
    type=str,
    default=DEFAULT_SORT_BY,
    show_default=True,
    help=f"Sort field: {', '.join(SORT_FIELDS)}"
)
@click.option(
    "--sort-order",
    type=click.Choice(["asc", "desc"]),
    default=DEFAULT_SORT_ORDER,
    show_default=True,
    help="Sort direction"
)
@click.pass_obj
def songs(config: Config, sort_by: str, sort_order: str) -> None:
    """
    Print the catalog with current Spotify popularity as JSON.
    """
    try:
        service = build_service(config)
        try:
            result = service.list_songs(sort_by=sort_by, sort_order=sort_order)
        finally:
            service.client.close()
        click.echo(json.dumps([song.to_dict() for song in result], indent=4, ensure_ascii=False))

    except CatalogError as e:
        click.echo(f"Catalog error: {e.message}", err=True)
        sys.exit(2)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET", err=True)
        logger.debug(f"Spotify error details: {e.details}")
        sys.exit(3)

    except AguavaError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(4)

    finally:
        shutdown_logging()


def _load_configuration(config_path: Optional[Path]) -> Config:
    """
    Load .env and config.yaml, exiting with status 1 on a configuration error.
    """
    load_dotenv()
    try:
        return load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `aguava` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
