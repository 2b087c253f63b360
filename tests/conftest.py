"""Test configuration and fixtures"""

import logging

import pytest

from aguava_api.catalog.models import Song
from aguava_api.core.config import SpotifyConfig

TOKEN_URL = "https://accounts.test/api/token"
API_URL = "https://api.test/v1"
TRACKS_URL = f"{API_URL}/tracks"


class FakeClock:
    """Manually advanced clock for token expiry tests"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Sleep replacement that records requested delays"""

    def __init__(self):
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def spotify_config():
    """Spotify config pointing at test URLs"""
    return SpotifyConfig(
        client_id="test_client_id",
        client_secret="test_client_secret",
        token_url=TOKEN_URL,
        api_url=API_URL
    )


@pytest.fixture
def sample_songs():
    """Small catalog with a placeholder and a song without Spotify ID"""
    return [
        Song(name="If I", streams=924000, key="B", bpm=119, spotify_id="54Ew6UcuXLChTnSAwXAIXY"),
        Song(name="Payday", streams=556000, key="F", bpm=126, spotify_id="4gpOjiawQcmFqRSwtp7Ppt"),
        Song(name="Unreleased", streams=1000, key="C", bpm=100, spotify_id=""),
        Song(name="Template", streams=500, key="D", bpm=90, spotify_id="YOUR_REAL_ID_HERE"),
        Song(name="Vanilla", streams=140000, key="F#", bpm=116, spotify_id="0KNQTHbKpmQtRSDgYhkJf7"),
    ]


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers after tests that call setup_logging()"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def track_ids(count: int, prefix: str = "track") -> list[str]:
    return [f"{prefix}{i:03d}" for i in range(count)]
