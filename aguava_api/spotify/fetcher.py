"""
Batched popularity lookup for Spotify tracks.

Spotify's "Get Several Tracks" endpoint accepts at most 50 IDs per
request. fetch_batch() performs exactly one such request; fetch_popularity()
splits a longer ID list into contiguous batches and merges the results.

Partial failure:
    A batch that fails (rate limit exhaustion, transport error, non-200
    status, bad payload) is logged, recorded in the FetchReport, and
    skipped. The remaining batches still run and their results are kept.

Batch Optimization:
    100 track IDs -> 2 requests instead of 100.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Iterator, Sequence

from aguava_api.core.config import DEFAULT_API_URL
from aguava_api.core.exceptions import SpotifyError
from aguava_api.core.logger import get_logger, log_batch_failure
from aguava_api.spotify.models import BatchFailure, FetchReport
from aguava_api.spotify.retry import RequestExecutor

logger = get_logger(__name__)


# Spotify limit for GET /tracks?ids=
MAX_BATCH_SIZE = 50


def iter_batches(items: Sequence[str], size: int = MAX_BATCH_SIZE) -> Iterator[list[str]]:
    """
    Yield contiguous slices of at most `size` items, in order.

    Every item appears in exactly one slice. An empty input yields nothing.
    """
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class TrackDetailsFetcher:
    """
    Fetches track popularity from the Spotify Web API.

    Attributes:
        _executor: RequestExecutor used for every request.
        _tracks_url: Full URL of the several-tracks endpoint.
    """

    def __init__(self, executor: RequestExecutor, api_url: str = DEFAULT_API_URL) -> None:
        self._executor = executor
        self._tracks_url = f"{api_url.rstrip('/')}/tracks"

    def fetch_batch(self, track_ids: Sequence[str], access_token: str) -> dict[str, int]:
        """
        Fetch popularity for up to 50 tracks with a single request.

        Args:
            track_ids: Spotify track IDs (max 50).
            access_token: Bearer token from TokenCache.

        Returns:
            Map of track ID to popularity. IDs Spotify does not know are absent.

        Raises:
            ValueError: If more than MAX_BATCH_SIZE IDs are given.
            SpotifyError: Non-200 response or unparsable body (and the
                          transport / rate limit subclasses from the executor).
        """
        if not track_ids:
            return {}
        if len(track_ids) > MAX_BATCH_SIZE:
            raise ValueError(
                f"Too many track IDs for one request; max is {MAX_BATCH_SIZE}, "
                f"got {len(track_ids)}"
            )

        response = self._executor.execute(
            "GET",
            self._tracks_url,
            params={"ids": ",".join(track_ids)},
            headers={"Authorization": f"Bearer {access_token}"}
        )

        with response:
            body = response.text
            status_code = response.status_code

            if status_code != 200:
                raise SpotifyError(
                    f"Failed to fetch track data: status {status_code}",
                    details={"body": body, "batch_size": len(track_ids)},
                    status_code=status_code
                )

            try:
                data = response.json()
            except ValueError as e:
                raise SpotifyError(
                    f"Failed to parse track data: {e}",
                    details={"body": body, "batch_size": len(track_ids)},
                    status_code=status_code
                ) from e

        return _parse_popularity(data, body)

    def fetch_popularity(
        self,
        track_ids: Sequence[str],
        access_token: str,
        max_workers: int = 1
    ) -> FetchReport:
        """
        Fetch popularity for any number of tracks in batches of 50.

        Args:
            track_ids: Spotify track IDs, unique.
            access_token: Bearer token from TokenCache.
            max_workers: Batches fetched concurrently. 1 fetches them in order.

        Returns:
            FetchReport with the merged popularity map and any failed batches.
            The merged map does not depend on batch completion order.
        """
        batches = list(iter_batches(track_ids))
        report = FetchReport(batches=len(batches))

        if not batches:
            return report

        logger.info(
            f"Fetching popularity for {len(track_ids)} track IDs in {len(batches)} batch(es)"
        )

        if max_workers <= 1 or len(batches) == 1:
            for batch in batches:
                self._run_batch(batch, access_token, report)
        else:
            with ThreadPoolExecutor(max_workers=min(max_workers, len(batches))) as pool:
                future_to_batch = {
                    pool.submit(self.fetch_batch, batch, access_token): batch
                    for batch in batches
                }
                for future in as_completed(future_to_batch):
                    batch = future_to_batch[future]
                    try:
                        result = future.result()
                    except SpotifyError as e:
                        self._record_failure(batch, e, report)
                    else:
                        report.popularity.update(result)

        logger.info(
            f"Finished fetching popularities. Result map size: {len(report.popularity)}"
            + (f", {report.failed_batches} batch(es) failed" if report.failures else "")
        )
        return report

    def _run_batch(self, batch: list[str], access_token: str, report: FetchReport) -> None:
        logger.debug(f"Fetching batch of {len(batch)}: {batch}")
        try:
            report.popularity.update(self.fetch_batch(batch, access_token))
        except SpotifyError as e:
            self._record_failure(batch, e, report)

    @staticmethod
    def _record_failure(batch: list[str], error: SpotifyError, report: FetchReport) -> None:
        log_batch_failure(logger, batch, error)
        report.failures.append(BatchFailure(track_ids=tuple(batch), error=error))


def _parse_popularity(data: Any, body: str) -> dict[str, int]:
    """
    Extract {id: popularity} from a several-tracks response.

    Null entries (unknown IDs) and entries without an ID are skipped.
    A missing popularity counts as 0.
    """
    # "tracks": null decodes as no tracks
    if not isinstance(data, dict) or not isinstance(data.get("tracks") or [], list):
        raise SpotifyError(
            "Unexpected track data structure",
            details={"body": body},
            status_code=200
        )

    popularity: dict[str, int] = {}
    for track in data.get("tracks") or []:
        if not isinstance(track, dict):
            continue
        track_id = track.get("id")
        if not track_id:
            continue
        try:
            popularity[track_id] = int(track.get("popularity") or 0)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-integer popularity for track {track_id}")
    return popularity
