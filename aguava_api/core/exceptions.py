"""
Exception classes for aguava-api.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus a details dictionary
so that the web layer can log context without echoing it to clients.

Exception Hierarchy:
    AguavaError (base)
        ConfigError - Configuration file issues
        CatalogError - Song catalog file issues
        SpotifyError - Spotify API issues (non-200 responses, bad payloads)
            SpotifyAuthError - Token acquisition failed
            SpotifyTransportError - Network/connection failure
            RateLimitExceededError - 429 responses after all retries
"""


class AguavaError(Exception):
    """
    Base exception for all aguava-api errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., status code, URL).

    Example:
        try:
            songs = service.list_songs()
        except AguavaError as e:
            logger.error(f"Request failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'status_code': HTTP status returned by Spotify
                     - 'url': URL that caused the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(AguavaError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Explicit config path does not exist
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., negative timeout, port out of range)

    Missing Spotify credentials are NOT a configuration error: they surface
    as SpotifyAuthError when the first token is requested.
    """
    pass


class CatalogError(AguavaError):
    """
    Raised when the song catalog cannot be loaded.

    Common causes:
        - Catalog file not found or unreadable
        - Entry missing a required field (name, streams, key, bpm)
        - Field has the wrong type (e.g., streams as a string)
    """
    pass


class SpotifyError(AguavaError):
    """
    Raised when there's an issue with the Spotify API.

    Used directly for upstream semantic errors: any response that is neither
    200 nor 429, or a 200 whose body cannot be parsed. The subclasses below
    cover the other failure modes so callers can tell them apart.

    Attributes:
        status_code: HTTP status returned by Spotify, if any.
        is_auth_error: True if this is an authentication error.
        is_rate_limit: True if this is a rate limit error.

    Example:
        raise SpotifyError(
            "Failed to fetch track data: status 404",
            details={'body': response.text},
            status_code=404
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            status_code: HTTP status code of the failing response, if any.
            is_auth_error: Set to True if this is an authentication failure.
            is_rate_limit: Set to True if retries were exhausted on 429 responses.
        """
        super().__init__(message, details)
        self.status_code = status_code
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class SpotifyAuthError(SpotifyError):
    """
    Raised when an access token cannot be obtained.

    Common causes:
        - SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not set
        - Credentials rejected by the accounts service
        - Token endpoint unreachable or returned an unparsable body

    The previously cached credential (if any) is left untouched.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None
    ) -> None:
        super().__init__(message, details, status_code=status_code, is_auth_error=True)


class SpotifyTransportError(SpotifyError):
    """
    Raised when a request to Spotify fails at the network level.

    Transport failures are never retried.
    """
    pass


class RateLimitExceededError(SpotifyError):
    """
    Raised when Spotify keeps answering 429 after all allowed attempts.

    Kept distinct from other SpotifyError cases so callers can log or alert
    on rate limiting separately.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = 429
    ) -> None:
        super().__init__(message, details, status_code=status_code, is_rate_limit=True)
