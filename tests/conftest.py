import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from spotipy import SpotifyException

# Ensure tests can import the package regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from beatsync.core import spotify_client
from beatsync.core.document_store import DocumentStore


class RecordingStore(DocumentStore):
    """In-memory store that also records every partial update in order."""

    def __init__(self) -> None:
        super().__init__()
        self.updates: List[tuple] = []

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        self.updates.append((path, dict(partial)))
        await super().update(path, partial)


class FakeSpotify:
    """Stands in for the blocking Spotipy calls in beatsync.core.spotify_client."""

    def __init__(self) -> None:
        self.search_results: Dict[str, Any] = {}
        self.queries: List[str] = []
        self.inserts: List[tuple] = []
        self.refreshes: List[str] = []
        self.snapshot_id = "snap-1"
        self.new_access_token = "fresh-token"
        self.expired_tokens = {"expired-token"}
        self.insert_error: Exception | None = None
        self.refresh_error: Exception | None = None

    def _check(self, client) -> None:
        if client.token in self.expired_tokens:
            raise SpotifyException(401, -1, "The access token expired")

    def build_client(self, access_token):
        return SimpleNamespace(token=access_token)

    def search_track_uris(self, client, query):
        self.queries.append(query)
        self._check(client)
        result = self.search_results.get(query, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    def add_track_to_playlist(self, client, playlist_id, uri, position=0):
        self._check(client)
        if self.insert_error is not None:
            raise self.insert_error
        self.inserts.append((playlist_id, uri, position))
        return self.snapshot_id

    def refresh_access_token(self, refresh_token):
        self.refreshes.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.new_access_token


@pytest.fixture
def fake_spotify(monkeypatch) -> FakeSpotify:
    fake = FakeSpotify()
    monkeypatch.setattr(spotify_client, "build_client", fake.build_client)
    monkeypatch.setattr(spotify_client, "search_track_uris", fake.search_track_uris)
    monkeypatch.setattr(spotify_client, "add_track_to_playlist", fake.add_track_to_playlist)
    monkeypatch.setattr(spotify_client, "refresh_access_token", fake.refresh_access_token)
    return fake


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()
