"""
Configuration management for aguava-api.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml, plus the Spotify
credentials supplied through the environment.

The configuration file contains:
    - Spotify endpoints, timeouts, retry bound and batch parallelism
    - Server host, port and allowed CORS origins
    - Optional path to a custom song catalog
    - Optional log directory and console log level

Every section is optional. When no config.yaml exists in the current
working directory the defaults below are used.

Credentials:
    SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET environment variables take
    precedence over the values in config.yaml. Missing credentials are
    accepted here and reported as an authentication failure on the first
    request, so the server still starts.

Example config.yaml:
    spotify:
      request_timeout: 15
      max_retries: 3
      batch_workers: 1

    server:
      host: "0.0.0.0"
      port: 8080
      cors_origins:
        - "http://localhost:3000"

    catalog:
      path: null  # Optional: path to a songs.yaml file

    logging:
      directory: "~/aguava/logs"
      level: INFO
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from aguava_api.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

CLIENT_ID_ENV = "SPOTIFY_CLIENT_ID"
CLIENT_SECRET_ENV = "SPOTIFY_CLIENT_SECRET"

DEFAULT_TOKEN_URL = "https://accounts.spotify.com/api/token"
DEFAULT_API_URL = "https://api.spotify.com/v1"


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API configuration.

    Attributes:
        client_id: The Spotify application client ID (may be empty).
        client_secret: The Spotify application client secret (may be empty).
        token_url: Accounts service endpoint for the client credentials grant.
        api_url: Base URL of the Web API.
        token_timeout: Timeout in seconds for token requests.
        request_timeout: Timeout in seconds for each Web API request attempt.
        max_retries: Maximum attempts per request when rate limited.
        batch_workers: Number of track batches fetched concurrently.
                       1 means batches are fetched sequentially.
    """
    client_id: str = ""
    client_secret: str = ""
    token_url: str = DEFAULT_TOKEN_URL
    api_url: str = DEFAULT_API_URL
    token_timeout: float = 10.0
    request_timeout: float = 15.0
    max_retries: int = 3
    batch_workers: int = 1

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class ServerConfig:
    """
    HTTP server configuration.

    Attributes:
        host: Interface to bind.
        port: TCP port to listen on.
        cors_origins: Origins allowed to call the API from a browser.
    """
    host: str = "localhost"
    port: int = 8080
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)


@dataclass(frozen=True)
class CatalogConfig:
    """
    Song catalog configuration.

    Attributes:
        path: Path to a YAML song catalog, or None for the bundled catalog.
    """
    path: Path | None = None


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        directory: Directory for log files, or None to log to console only.
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
    """
    directory: Path | None = None
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Listening on {config.server.host}:{config.server.port}")
    """
    spotify: SpotifyConfig = SpotifyConfig()
    server: ServerConfig = ServerConfig()
    catalog: CatalogConfig = CatalogConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(
    config_path: Path | None = None,
    environ: dict[str, str] | None = None
) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file. It must exist.
                     If None, config.yaml in the current working directory
                     is used when present, defaults otherwise.
        environ: Environment mapping to read credentials from.
                 Defaults to os.environ.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, has invalid
                     YAML syntax, or contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Read and parse YAML content (empty file means defaults)
        3. Validate structure (each present section is a mapping)
        4. Parse every section, applying defaults
        5. Override credentials from the environment
    """
    if environ is None:
        environ = dict(os.environ)

    raw_config: dict[str, Any] = {}

    if config_path is None:
        default_path = Path.cwd() / CONFIG_FILENAME
        if default_path.exists():
            raw_config = _read_config_file(default_path)
    else:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw_config = _read_config_file(config_path)

    _validate_config(raw_config)

    spotify_config = _parse_spotify_config(raw_config.get("spotify"), environ)
    server_config = _parse_server_config(raw_config.get("server"))
    catalog_config = _parse_catalog_config(raw_config.get("catalog"))
    logging_config = _parse_logging_config(raw_config.get("logging"))

    return Config(
        spotify=spotify_config,
        server=server_config,
        catalog=catalog_config,
        logging=logging_config
    )


def _read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # Empty file
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate that every section present in the config is a dictionary.

    Raises:
        ConfigError: If a section is not a mapping.
    """
    for section in ("spotify", "server", "catalog", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _positive_number(section: dict[str, Any], field: str, default: float, prefix: str) -> float:
    raw = section.get(field)
    if raw is None:
        return default
    # bool is a subclass of int
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw <= 0:
        raise ConfigError(
            f"'{prefix}.{field}' must be a positive number",
            details={"field": f"{prefix}.{field}", "value": raw}
        )
    return float(raw)


def _positive_int(section: dict[str, Any], field: str, default: int, prefix: str) -> int:
    raw = section.get(field)
    if raw is None:
        return default
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        raise ConfigError(
            f"'{prefix}.{field}' must be a positive integer",
            details={"field": f"{prefix}.{field}", "value": raw}
        )
    return raw


def _optional_string(section: dict[str, Any], field: str, default: str, prefix: str) -> str:
    raw = section.get(field)
    if raw is None:
        return default
    if not isinstance(raw, str):
        raise ConfigError(
            f"'{prefix}.{field}' must be a string",
            details={"field": f"{prefix}.{field}"}
        )
    return raw.strip()


def _parse_spotify_config(
    spotify_section: dict[str, Any] | None,
    environ: dict[str, str]
) -> SpotifyConfig:
    """
    Parse and validate the Spotify configuration section.

    Credentials from the environment win over the file. Neither is required.

    Raises:
        ConfigError: If a timeout, retry count or worker count is invalid.
    """
    section = spotify_section or {}
    prefix = "spotify"

    client_id = environ.get(CLIENT_ID_ENV) or _optional_string(section, "client_id", "", prefix)
    client_secret = (
        environ.get(CLIENT_SECRET_ENV)
        or _optional_string(section, "client_secret", "", prefix)
    )

    token_url = _optional_string(section, "token_url", DEFAULT_TOKEN_URL, prefix)
    api_url = _optional_string(section, "api_url", DEFAULT_API_URL, prefix).rstrip("/")

    return SpotifyConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        token_url=token_url,
        api_url=api_url,
        token_timeout=_positive_number(section, "token_timeout", 10.0, prefix),
        request_timeout=_positive_number(section, "request_timeout", 15.0, prefix),
        max_retries=_positive_int(section, "max_retries", 3, prefix),
        batch_workers=_positive_int(section, "batch_workers", 1, prefix)
    )


def _parse_server_config(server_section: dict[str, Any] | None) -> ServerConfig:
    """
    Parse and validate the server configuration section.

    Raises:
        ConfigError: If port is outside 1-65535 or cors_origins is not a list of strings.
    """
    section = server_section or {}
    defaults = ServerConfig()

    host = _optional_string(section, "host", defaults.host, "server") or defaults.host

    port = section.get("port", defaults.port)
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise ConfigError(
            "'server.port' must be an integer between 1 and 65535",
            details={"field": "server.port", "value": port}
        )

    origins = section.get("cors_origins")
    if origins is None:
        cors_origins = defaults.cors_origins
    else:
        if isinstance(origins, str):
            origins = [origins]
        if not isinstance(origins, list) or not all(isinstance(o, str) for o in origins):
            raise ConfigError(
                "'server.cors_origins' must be a list of strings",
                details={"field": "server.cors_origins"}
            )
        cors_origins = tuple(o.strip() for o in origins if o.strip())

    return ServerConfig(host=host, port=port, cors_origins=cors_origins)


def _parse_catalog_config(catalog_section: dict[str, Any] | None) -> CatalogConfig:
    """
    Parse the catalog section. The file itself is checked when it is loaded.
    """
    section = catalog_section or {}
    raw_path = _optional_string(section, "path", "", "catalog")
    if not raw_path:
        return CatalogConfig()
    return CatalogConfig(path=Path(raw_path).expanduser().resolve())


def _parse_logging_config(logging_section: dict[str, Any] | None) -> LoggingConfig:
    """
    Parse and validate the logging section.

    Raises:
        ConfigError: If level is not a standard logging level name.
    """
    section = logging_section or {}

    level = _optional_string(section, "level", "INFO", "logging").upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigError(
            f"'logging.level' must be a logging level name, got {level!r}",
            details={"field": "logging.level", "value": level}
        )

    raw_dir = _optional_string(section, "directory", "", "logging")
    directory = Path(raw_dir).expanduser().resolve() if raw_dir else None

    return LoggingConfig(directory=directory, level=level)
