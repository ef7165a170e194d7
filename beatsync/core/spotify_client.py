"""Spotify API access via Spotipy: search, playlist insert, and OAuth token exchange.

All functions here are blocking; callers run them in a worker thread.
"""
import logging
from typing import List, Optional

from spotipy import Spotify, SpotifyException
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth

from beatsync.config import (
    PLAYLIST_INSERT_POSITION,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_REQUEST_TIMEOUT,
    SPOTIFY_SCOPES,
    SPOTIFY_SEARCH_LIMIT,
)

logger = logging.getLogger(__name__)


def is_authorization_error(exc: BaseException) -> bool:
    """True if a Spotify call failed because the access token expired or was rejected."""
    return isinstance(exc, SpotifyException) and exc.http_status == 401


def get_oauth(cache: Optional[MemoryCacheHandler] = None) -> SpotifyOAuth:
    """OAuth helper bound to the app credentials. Tokens never touch the filesystem."""
    return SpotifyOAuth(
        client_id=SPOTIFY_CLIENT_ID,
        client_secret=SPOTIFY_CLIENT_SECRET,
        redirect_uri=SPOTIFY_REDIRECT_URI,
        scope=SPOTIFY_SCOPES,
        cache_handler=cache or MemoryCacheHandler(),
        open_browser=False,
    )


def build_client(access_token: Optional[str]) -> Spotify:
    """Return a Spotipy client that authenticates with the given access token."""
    return Spotify(auth=access_token, requests_timeout=SPOTIFY_REQUEST_TIMEOUT)


def refresh_access_token(refresh_token: str) -> str:
    """Exchange the refresh token for a new access token. Raises on failure."""
    token_info = get_oauth().refresh_access_token(refresh_token)
    return token_info["access_token"]


def exchange_code(code: str) -> Optional[dict]:
    """Exchange an OAuth code for tokens. Returns the token info dict or None on failure."""
    if not SPOTIFY_CLIENT_ID or not SPOTIFY_CLIENT_SECRET:
        return None
    cache = MemoryCacheHandler()
    auth = get_oauth(cache)
    try:
        auth.get_access_token(code=code, as_dict=False, check_cache=False)
    except Exception as e:
        logger.warning("exchange_code :: error :: %s", e)
        return None
    return cache.get_cached_token()


def search_track_uris(client: Spotify, query: str) -> List[str]:
    """Run a track search and return candidate URIs in Spotify's ranking order."""
    results = client.search(q=query, type="track", limit=SPOTIFY_SEARCH_LIMIT)
    items = ((results or {}).get("tracks") or {}).get("items") or []
    return [item["uri"] for item in items if item and item.get("uri")]


def add_track_to_playlist(
    client: Spotify,
    playlist_id: str,
    uri: str,
    position: int = PLAYLIST_INSERT_POSITION,
) -> Optional[str]:
    """Insert one track into a playlist and return the new snapshot id."""
    result = client.playlist_add_items(playlist_id, [uri], position=position)
    return (result or {}).get("snapshot_id")
