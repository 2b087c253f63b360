"""
Rate-limit aware request execution for the Spotify Web API.

RequestExecutor sends one HTTP request and, when Spotify answers 429 Too
Many Requests, waits and tries again up to a bounded number of attempts.
Only rate limiting is retried: transport failures fail immediately and
every other status code is handed back to the caller to classify.

Backoff:
    The Retry-After header (integer seconds) is honored when present.
    Otherwise the delay is fallback_base + attempt * fallback_step,
    i.e. 5s, 7s, 9s ... with the default policy.

Usage:
    with RequestExecutor(timeout=15) as executor:
        response = executor.execute(
            "GET", url, headers={"Authorization": f"Bearer {token}"}
        )
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

import requests

from aguava_api.core.exceptions import (
    RateLimitExceededError,
    SpotifyError,
    SpotifyTransportError,
)
from aguava_api.core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    When and how long to wait before retrying a request.

    Attributes:
        max_attempts: Total number of requests allowed, including the first.
        fallback_base: Delay in seconds for the first retry when Spotify
                       sends no usable Retry-After header.
        fallback_step: Seconds added to the fallback delay per attempt.
        retry_statuses: Status codes that trigger a retry.
    """
    max_attempts: int = 3
    fallback_base: float = 5
    fallback_step: float = 2
    retry_statuses: frozenset[int] = frozenset({429})

    def is_retryable(self, response: requests.Response) -> bool:
        return response.status_code in self.retry_statuses

    def delay_for(self, response: requests.Response, attempt: int) -> float:
        """
        Compute the backoff delay before the next attempt.

        Args:
            response: The rate limited response.
            attempt: Zero-based index of the attempt that was rate limited.

        Returns:
            Retry-After as seconds if it is an integer, else the fallback.
        """
        retry_after = response.headers.get("Retry-After")
        try:
            return max(0, int(retry_after))
        except (TypeError, ValueError):
            return self.fallback_base + attempt * self.fallback_step


class RequestExecutor:
    """
    Sends requests through a shared session with 429 retry handling.

    The executor owns its requests.Session unless one is injected, and
    closes it when used as a context manager. Sleeping between attempts
    blocks only the calling thread.

    Attributes:
        _session: Session used for every attempt.
        _policy: Retry policy.
        _timeout: Per-attempt timeout in seconds.
        _sleep: Sleep function; injectable for tests.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        policy: RetryPolicy | None = None,
        timeout: float = 15.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._policy = policy or RetryPolicy()
        self._timeout = timeout
        self._sleep = sleep
        self._clock = clock

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def execute(
        self,
        method: str,
        url: str,
        *,
        deadline: float | None = None,
        **kwargs: Any
    ) -> requests.Response:
        """
        Send a request, retrying while Spotify answers with 429.

        Args:
            method: HTTP method.
            url: Request URL.
            deadline: Optional time.monotonic() value after which no new
                      attempt or backoff may start. Each attempt's timeout
                      is capped to the time remaining.
            **kwargs: Passed through to requests.Session.request().

        Returns:
            The first response that is not rate limited, whatever its status.

        Raises:
            SpotifyTransportError: Network failure (never retried).
            RateLimitExceededError: Still rate limited on the last attempt,
                                    or the next backoff would pass the deadline.
            SpotifyError: The deadline passed before the first attempt, or
                          the retry loop ended without a response.
        """
        max_attempts = self._policy.max_attempts

        for attempt in range(max_attempts):
            timeout = self._timeout
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    if attempt == 0:
                        raise SpotifyError(
                            "Deadline passed before Spotify request was sent",
                            details={"url": url, "attempts": 0}
                        )
                    raise RateLimitExceededError(
                        "Deadline reached before Spotify request could be retried",
                        details={"url": url, "attempts": attempt}
                    )
                timeout = min(timeout, remaining)

            try:
                response = self._session.request(method, url, timeout=timeout, **kwargs)
            except requests.RequestException as e:
                raise SpotifyTransportError(
                    f"Failed executing request to Spotify: {e}",
                    details={"url": url, "original_error": str(e)}
                ) from e

            if not self._policy.is_retryable(response):
                return response

            # Drain and release the connection before waiting
            _ = response.content
            response.close()

            delay = self._policy.delay_for(response, attempt)

            if attempt >= max_attempts - 1:
                raise RateLimitExceededError(
                    f"Rate limit exceeded after {max_attempts} attempts",
                    details={"url": url, "attempts": max_attempts},
                    status_code=response.status_code
                )

            if deadline is not None and self._clock() + delay > deadline:
                raise RateLimitExceededError(
                    f"Rate limited; retry in {delay}s would pass the deadline",
                    details={"url": url, "attempts": attempt + 1, "retry_after": delay},
                    status_code=response.status_code
                )

            logger.warning(f"Rate limit exceeded. Retrying after {delay} seconds...")
            self._sleep(delay)

        raise SpotifyError(
            "Max retries reached for Spotify request",
            details={"url": url, "attempts": max_attempts}
        )
