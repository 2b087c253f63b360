"""Test batched popularity fetching"""

import json
import logging
import math
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from aguava_api.core.exceptions import RateLimitExceededError, SpotifyError
from aguava_api.spotify.fetcher import MAX_BATCH_SIZE, TrackDetailsFetcher, iter_batches
from aguava_api.spotify.retry import RequestExecutor

from conftest import API_URL, TRACKS_URL, track_ids


def requested_ids(call) -> list[str]:
    query = parse_qs(urlparse(call.request.url).query)
    return query["ids"][0].split(",")


def echo_popularity(request):
    """Answer every requested ID with a popularity derived from its number"""
    ids = parse_qs(urlparse(request.url).query)["ids"][0].split(",")
    body = {"tracks": [{"id": i, "popularity": int(i[-3:]) % 100} for i in ids]}
    return 200, {}, json.dumps(body)


@pytest.fixture
def fetcher(sleep):
    return TrackDetailsFetcher(RequestExecutor(sleep=sleep), api_url=API_URL)


class TestIterBatches:
    """Test batch slicing"""

    def test_empty(self):
        """Test no batches for no IDs"""
        assert list(iter_batches([])) == []

    def test_exact_multiple(self):
        """Test full batches only"""
        batches = list(iter_batches(track_ids(100)))
        assert [len(b) for b in batches] == [50, 50]

    def test_remainder_and_order(self):
        """Test last partial batch and ID order"""
        ids = track_ids(120)
        batches = list(iter_batches(ids))
        assert [len(b) for b in batches] == [50, 50, 20]
        assert [i for batch in batches for i in batch] == ids

    def test_rejects_non_positive_size(self):
        """Test batch size must be positive"""
        with pytest.raises(ValueError):
            list(iter_batches(["a"], size=0))


class TestFetchBatch:
    """Test TrackDetailsFetcher.fetch_batch"""

    @responses.activate
    def test_empty_input_makes_no_request(self, fetcher):
        """Test empty batch makes no request"""
        assert fetcher.fetch_batch([], "token") == {}
        assert len(responses.calls) == 0

    @responses.activate
    def test_more_than_fifty_rejected(self, fetcher):
        """Test more than 50 IDs raises ValueError"""
        with pytest.raises(ValueError, match="max is 50"):
            fetcher.fetch_batch(track_ids(51), "token")
        assert len(responses.calls) == 0

    @responses.activate
    def test_full_batch_is_one_request(self, fetcher):
        """Test 50 IDs go out in one authorized request"""
        responses.add_callback(responses.GET, TRACKS_URL, callback=echo_popularity)
        ids = track_ids(MAX_BATCH_SIZE)

        result = fetcher.fetch_batch(ids, "abc")

        assert len(responses.calls) == 1
        assert requested_ids(responses.calls[0]) == ids
        assert responses.calls[0].request.headers["Authorization"] == "Bearer abc"
        assert len(result) == MAX_BATCH_SIZE

    @responses.activate
    def test_skips_null_and_idless_entries(self, fetcher):
        """Test null entries and entries without ID are skipped"""
        responses.add(
            responses.GET,
            TRACKS_URL,
            json={"tracks": [
                {"id": "a", "popularity": 40},
                None,
                {"id": "", "popularity": 99},
                {"popularity": 12},
                {"id": "b"},
            ]},
        )

        result = fetcher.fetch_batch(["a", "x", "b"], "token")

        assert result == {"a": 40, "b": 0}

    @responses.activate
    def test_null_tracks_is_empty_result(self, fetcher, caplog):
        """Test null tracks list is an empty result, not a failure"""
        responses.add(responses.GET, TRACKS_URL, json={"tracks": None})

        with caplog.at_level(logging.WARNING):
            report = fetcher.fetch_popularity(["a", "b"], "token")

        assert report.popularity == {}
        assert report.complete
        assert not [r for r in caplog.records if hasattr(r, "batch_failed_track_ids")]

    @responses.activate
    def test_non_list_tracks_rejected(self, fetcher):
        """Test tracks that is not a list raises SpotifyError"""
        responses.add(responses.GET, TRACKS_URL, json={"tracks": {"id": "a"}})

        with pytest.raises(SpotifyError, match="Unexpected track data"):
            fetcher.fetch_batch(["a"], "token")

    @responses.activate
    def test_non_200_carries_status_and_body(self, fetcher):
        """Test non-200 response raises SpotifyError with status and body"""
        responses.add(responses.GET, TRACKS_URL, body='{"error": "bad id"}', status=400)

        with pytest.raises(SpotifyError) as exc_info:
            fetcher.fetch_batch(["a"], "token")

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["body"] == '{"error": "bad id"}'
        assert len(responses.calls) == 1

    @responses.activate
    def test_unparsable_body(self, fetcher):
        """Test unparsable body raises SpotifyError"""
        responses.add(responses.GET, TRACKS_URL, body="not json", status=200)

        with pytest.raises(SpotifyError, match="parse"):
            fetcher.fetch_batch(["a"], "token")


class TestFetchPopularity:
    """Test chunked fetching with partial failure"""

    @responses.activate
    def test_empty_input(self, fetcher):
        """Test no IDs makes no request"""
        report = fetcher.fetch_popularity([], "token")

        assert report.popularity == {}
        assert report.batches == 0
        assert report.complete
        assert len(responses.calls) == 0

    @pytest.mark.parametrize("count", [1, 50, 51, 120, 150])
    @responses.activate
    def test_batches_cover_input_once(self, fetcher, count):
        """Test batches cover every ID once, in order"""
        responses.add_callback(responses.GET, TRACKS_URL, callback=echo_popularity)
        ids = track_ids(count)

        report = fetcher.fetch_popularity(ids, "token")

        assert len(responses.calls) == math.ceil(count / 50)
        sent = [i for call in responses.calls for i in requested_ids(call)]
        assert sent == ids
        assert all(len(requested_ids(call)) <= 50 for call in responses.calls)
        assert set(report.popularity) == set(ids)
        assert report.batches == math.ceil(count / 50)

    @responses.activate
    def test_failed_batch_does_not_abort_siblings(self, fetcher):
        """Test a failed batch is recorded and the rest still fetched"""
        ids = track_ids(120)
        responses.add_callback(responses.GET, TRACKS_URL, callback=echo_popularity)
        responses.add(responses.GET, TRACKS_URL, body="upstream down", status=502)
        responses.add_callback(responses.GET, TRACKS_URL, callback=echo_popularity)

        report = fetcher.fetch_popularity(ids, "token")

        assert len(responses.calls) == 3
        assert report.failed_batches == 1
        assert report.failures[0].track_ids == tuple(ids[50:100])
        assert report.failures[0].error.status_code == 502
        assert set(report.popularity) == set(ids[:50]) | set(ids[100:])

    @responses.activate
    def test_rate_limited_batch_is_recorded(self, fetcher, sleep, caplog):
        """Test rate limit exhaustion is recorded at WARNING"""
        for _ in range(3):
            responses.add(responses.GET, TRACKS_URL, status=429)

        with caplog.at_level(logging.WARNING):
            report = fetcher.fetch_popularity(["a", "b"], "token")

        assert report.popularity == {}
        assert isinstance(report.failures[0].error, RateLimitExceededError)
        assert sleep.delays == [5, 7]
        failure_records = [r for r in caplog.records if hasattr(r, "batch_failed_track_ids")]
        assert failure_records[0].levelno == logging.WARNING
        assert failure_records[0].batch_failed_kind == "rate limit"

    @responses.activate
    def test_parallel_matches_sequential(self, fetcher):
        """Test parallel fetching gives the same result"""
        responses.add_callback(responses.GET, TRACKS_URL, callback=echo_popularity)
        ids = track_ids(175)

        sequential = fetcher.fetch_popularity(ids, "token")
        parallel = fetcher.fetch_popularity(ids, "token", max_workers=4)

        assert parallel.popularity == sequential.popularity
        assert len(responses.calls) == 2 * math.ceil(175 / 50)
